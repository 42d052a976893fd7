import copy
import json
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import parse_qs

import httpx
import pytest
from firebase_admin import firestore

from app.auth import CurrentUser
from app.domain.appointments.repository import AppointmentRepository
from app.domain.practitioners.repository import PractitionerRepository
from app.domain.practitioners.schemas import CreatePractitionerProfileInput
from app.domain.users.repository import UserRepository
from app.identity import IdentityProvider

# ============================================================================
# IN-MEMORY FIRESTORE
# ============================================================================


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[dict]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return copy.deepcopy(self._data)

    def get(self, field: str):
        return (self._data or {}).get(field)


class FakeWatch:
    def __init__(self, db: "FakeFirestore", query: "FakeQuery", callback):
        self.db = db
        self.query = query
        self.callback = callback
        self.active = True

    def fire(self) -> None:
        if self.active:
            self.callback(self.query.get(), [], datetime.now(timezone.utc))

    def unsubscribe(self) -> None:
        self.active = False
        self.db.watches.discard(self)


class FakeQuery:
    def __init__(self, db: "FakeFirestore", collection: str, filters=(), orders=(), cursor=None, max_results=None):
        self.db = db
        self.collection_name = collection
        self.filters = tuple(filters)
        self.orders = tuple(orders)
        self.cursor = cursor
        self.max_results = max_results

    def _copy(self, **changes) -> "FakeQuery":
        params = {
            "filters": self.filters,
            "orders": self.orders,
            "cursor": self.cursor,
            "max_results": self.max_results,
        }
        params.update(changes)
        return FakeQuery(self.db, self.collection_name, **params)

    def where(self, *, filter):
        return self._copy(filters=self.filters + (filter,))

    def order_by(self, field: str, direction=firestore.Query.ASCENDING):
        return self._copy(orders=self.orders + ((field, direction),))

    def start_after(self, snapshot):
        return self._copy(cursor=snapshot.id)

    def limit(self, count: int):
        return self._copy(max_results=count)

    @staticmethod
    def _matches(data: dict, field_filter) -> bool:
        op = field_filter.op_string
        expected = field_filter.value
        if field_filter.field_path not in data:
            return False
        actual = data[field_filter.field_path]
        if op == "==":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == "array_contains":
            return isinstance(actual, list) and expected in actual
        if actual is None:
            return False
        if op == ">=":
            return actual >= expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == "<":
            return actual < expected
        raise NotImplementedError(f"Unsupported operator: {op}")

    def get(self) -> list[FakeSnapshot]:
        self.db.maybe_fail("query")
        with self.db.lock:
            docs = [
                (doc_id, data)
                for doc_id, data in self.db.collections.get(self.collection_name, {}).items()
                if all(self._matches(data, f) for f in self.filters)
            ]

        for field, direction in reversed(self.orders):
            docs = [d for d in docs if d[1].get(field) is not None]
            docs.sort(key=lambda d: d[1][field], reverse=direction == firestore.Query.DESCENDING)

        if self.cursor is not None:
            ids = [doc_id for doc_id, _ in docs]
            if self.cursor in ids:
                docs = docs[ids.index(self.cursor) + 1 :]

        if self.max_results is not None:
            docs = docs[: self.max_results]

        return [FakeSnapshot(doc_id, copy.deepcopy(data)) for doc_id, data in docs]

    def stream(self):
        return iter(self.get())

    def on_snapshot(self, callback) -> FakeWatch:
        self.db.maybe_fail("on_snapshot")
        watch = FakeWatch(self.db, self, callback)
        self.db.watches.add(watch)
        watch.fire()
        return watch


class FakeDocumentReference:
    def __init__(self, db: "FakeFirestore", collection: str, doc_id: str):
        self.db = db
        self.collection_name = collection
        self.id = doc_id

    def _store(self) -> dict:
        return self.db.collections.setdefault(self.collection_name, {})

    def get(self) -> FakeSnapshot:
        self.db.maybe_fail("get")
        with self.db.lock:
            data = self._store().get(self.id)
            return FakeSnapshot(self.id, copy.deepcopy(data))

    def set(self, data: dict) -> None:
        self.db.maybe_fail("set")
        with self.db.lock:
            self._store()[self.id] = self.db.resolve(data)
        self.db.notify(self.collection_name)

    def update(self, data: dict) -> None:
        self.db.maybe_fail("update")
        with self.db.lock:
            current = self._store().get(self.id)
            if current is None:
                raise LookupError(f"No document to update: {self.collection_name}/{self.id}")
            current.update(self.db.resolve(data))
        self.db.notify(self.collection_name)


class FakeCollection(FakeQuery):
    def __init__(self, db: "FakeFirestore", name: str):
        super().__init__(db, name)

    def document(self, doc_id: Optional[str] = None) -> FakeDocumentReference:
        return FakeDocumentReference(self.db, self.collection_name, doc_id or uuid.uuid4().hex[:20])


class FakeFirestore:
    """The subset of the Firestore client the repositories use"""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self.watches: set[FakeWatch] = set()
        self.lock = threading.RLock()
        self.failures: dict[str, Exception] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def fail(self, operation: str, error: Exception) -> None:
        """Make every ``operation`` (get, set, update, query, on_snapshot) raise ``error``"""
        self.failures[operation] = error

    def maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    def now(self) -> datetime:
        # Strictly increasing so createdAt ordering is deterministic
        self._clock += timedelta(seconds=1)
        return self._clock

    def resolve(self, data: dict) -> dict:
        return {
            key: self.now() if value is firestore.SERVER_TIMESTAMP else copy.deepcopy(value)
            for key, value in data.items()
        }

    def notify(self, collection: str) -> None:
        for watch in list(self.watches):
            if watch.query.collection_name == collection:
                watch.fire()

    def seed(self, collection: str, doc_id: str, data: dict) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)


# ============================================================================
# IDENTITY TOOLKIT STUB
# ============================================================================


class IdentityToolkitStub:
    """Emulates the Identity Toolkit REST endpoints the provider calls"""

    def __init__(self):
        self.accounts: dict[str, dict] = {}  # email -> account
        self.failures: dict[str, str] = {}  # endpoint -> REST error message
        self.requests: list[tuple[str, dict]] = []
        self.emails_sent: list[dict] = []
        self.offline = False

    def fail(self, endpoint: str, message: str) -> None:
        self.failures[endpoint] = message

    def add_account(self, email: str, password: Optional[str] = None, **fields) -> dict:
        account = {
            "localId": fields.pop("localId", f"uid-{len(self.accounts) + 1}"),
            "email": email,
            "password": password,
            "emailVerified": False,
            **fields,
        }
        self.accounts[email] = account
        return account

    def _by_token(self, token: str) -> Optional[dict]:
        return next((a for a in self.accounts.values() if f"id-{a['localId']}" == token), None)

    @staticmethod
    def _session(account: dict, **extra) -> dict:
        body = {
            "localId": account["localId"],
            "email": account["email"],
            "idToken": f"id-{account['localId']}",
            "refreshToken": f"refresh-{account['localId']}",
            "emailVerified": account.get("emailVerified", False),
        }
        if account.get("displayName"):
            body["displayName"] = account["displayName"]
        if account.get("photoUrl"):
            body["photoUrl"] = account["photoUrl"]
        body.update(extra)
        return body

    @staticmethod
    def _error(message: str) -> httpx.Response:
        return httpx.Response(400, json={"error": {"code": 400, "message": message}})

    def handle(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("offline", request=request)

        endpoint = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content)
        self.requests.append((endpoint, payload))

        if request.url.params.get("key") != "test-api-key":
            return self._error("API_KEY_INVALID")
        if endpoint in self.failures:
            return self._error(self.failures[endpoint])

        handler = getattr(self, "_" + endpoint.split(":", 1)[1])
        return handler(payload)

    def _signUp(self, payload: dict) -> httpx.Response:
        if payload["email"] in self.accounts:
            return self._error("EMAIL_EXISTS")
        if len(payload["password"]) < 6:
            return self._error("WEAK_PASSWORD : Password should be at least 6 characters")
        account = self.add_account(payload["email"], payload["password"])
        return httpx.Response(200, json=self._session(account))

    def _signInWithPassword(self, payload: dict) -> httpx.Response:
        account = self.accounts.get(payload["email"])
        if account is None or account["password"] != payload["password"]:
            return self._error("INVALID_LOGIN_CREDENTIALS")
        return httpx.Response(200, json=self._session(account, registered=True))

    def _signInWithIdp(self, payload: dict) -> httpx.Response:
        post_body = parse_qs(payload["postBody"])
        token = post_body.get("id_token", post_body.get("access_token", [""]))[0]
        if not token.startswith("google:"):
            return self._error("INVALID_IDP_RESPONSE")
        email = token.split(":", 1)[1]

        account = self.accounts.get(email)
        if account is not None and account.get("password"):
            return httpx.Response(200, json={"email": email, "needConfirmation": True})

        is_new = account is None
        if is_new:
            account = self.add_account(
                email, displayName="Google User", photoUrl="https://example.com/p.png", emailVerified=True
            )
        return httpx.Response(200, json=self._session(account, isNewUser=is_new))

    def _update(self, payload: dict) -> httpx.Response:
        account = self._by_token(payload["idToken"])
        if account is None:
            return self._error("INVALID_ID_TOKEN")
        if "displayName" in payload:
            account["displayName"] = payload["displayName"]
        return httpx.Response(200, json=self._session(account))

    def _sendOobCode(self, payload: dict) -> httpx.Response:
        if payload["requestType"] == "PASSWORD_RESET":
            if payload["email"] not in self.accounts:
                return self._error("EMAIL_NOT_FOUND")
            email = payload["email"]
        else:
            account = self._by_token(payload["idToken"])
            if account is None:
                return self._error("INVALID_ID_TOKEN")
            email = account["email"]
        self.emails_sent.append({"type": payload["requestType"], "email": email})
        return httpx.Response(200, json={"email": email})

    def _lookup(self, payload: dict) -> httpx.Response:
        account = self._by_token(payload["idToken"])
        if account is None:
            return self._error("INVALID_ID_TOKEN")
        user = self._session(account)
        return httpx.Response(200, json={"users": [user]})


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def user_repo(fake_db):
    return UserRepository(fake_db)


@pytest.fixture
def practitioner_repo(fake_db):
    return PractitionerRepository(fake_db)


@pytest.fixture
def appointment_repo(fake_db):
    return AppointmentRepository(fake_db)


@pytest.fixture
def toolkit():
    return IdentityToolkitStub()


def make_identity(toolkit: IdentityToolkitStub) -> IdentityProvider:
    return IdentityProvider(
        api_key="test-api-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(toolkit.handle)),
        base_url="https://identitytoolkit.test/v1",
    )


@pytest.fixture
def identity(toolkit):
    return make_identity(toolkit)


@pytest.fixture
def client_user():
    return CurrentUser(uid="client-1", email="client@example.com", name="Casey Client", id_token="id-client-1")


@pytest.fixture
def practitioner_user():
    return CurrentUser(uid="prac-1", email="prac@example.com", name="Pat Practitioner", id_token="id-prac-1")


@pytest.fixture
def seeded_practitioner(practitioner_repo):
    return practitioner_repo.create_practitioner_profile(
        CreatePractitionerProfileInput(
            uid="prac-1",
            email="prac@example.com",
            displayName="Pat Practitioner",
            specialties=["reiki", "massage"],
        )
    )


@pytest.fixture
def identity_factory(toolkit):
    """A fresh provider per call, the way each request gets one"""
    return lambda: make_identity(toolkit)
