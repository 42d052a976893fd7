"""User-facing notices returned alongside action results"""

from typing import Literal

from pydantic import BaseModel

NoticeLevel = Literal["success", "info", "warning", "error"]


class Notice(BaseModel):
    level: NoticeLevel
    message: str


def success(message: str) -> Notice:
    return Notice(level="success", message=message)


def warning(message: str) -> Notice:
    return Notice(level="warning", message=message)


def error(message: str) -> Notice:
    return Notice(level="error", message=message)
