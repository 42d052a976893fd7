import httpx
import pytest

from app.identity import AuthError, GoogleCredential, IdentityProvider


async def test_sign_up_creates_account_and_notifies(identity, toolkit):
    seen = []
    identity.on_auth_state_changed(seen.append)

    user = await identity.sign_up("new@example.com", "secret123")

    assert user.email == "new@example.com"
    assert user.id_token == f"id-{user.uid}"
    assert identity.current_user == user
    assert seen == [None, user]
    assert toolkit.requests[0][0] == "accounts:signUp"


async def test_existing_email_maps_to_sdk_code(identity, toolkit):
    toolkit.add_account("taken@example.com", "secret123")

    with pytest.raises(AuthError) as exc_info:
        await identity.sign_up("taken@example.com", "secret123")

    assert exc_info.value.code == "auth/email-already-in-use"


async def test_weak_password_detail_is_stripped(identity):
    with pytest.raises(AuthError) as exc_info:
        await identity.sign_up("new@example.com", "123")

    assert exc_info.value.code == "auth/weak-password"


async def test_wrong_password_is_invalid_credential(identity, toolkit):
    toolkit.add_account("user@example.com", "right-password")

    with pytest.raises(AuthError) as exc_info:
        await identity.sign_in_with_password("user@example.com", "wrong-password")

    assert exc_info.value.code == "auth/invalid-credential"
    assert identity.current_user is None


async def test_unknown_rest_error_is_internal(identity, toolkit):
    toolkit.fail("accounts:signInWithPassword", "SOMETHING_NEW")

    with pytest.raises(AuthError) as exc_info:
        await identity.sign_in_with_password("user@example.com", "pw")

    assert exc_info.value.code == "auth/internal-error"
    assert exc_info.value.message == "Firebase: Error (auth/internal-error)."


@pytest.mark.parametrize(
    "status_code, body",
    [
        (502, {"json": ["upstream unavailable"]}),
        (500, {"json": {"error": "backend error"}}),
        (503, {"text": "<html>Service Unavailable</html>"}),
    ],
)
async def test_unexpected_error_body_is_internal(status_code, body):
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, **body))
    async with httpx.AsyncClient(transport=transport) as http_client:
        identity = IdentityProvider(api_key="test-api-key", http_client=http_client)

        with pytest.raises(AuthError) as exc_info:
            await identity.sign_in_with_password("user@example.com", "pw")

    assert exc_info.value.code == "auth/internal-error"


async def test_transport_failure_is_network_error(identity, toolkit):
    toolkit.offline = True

    with pytest.raises(AuthError) as exc_info:
        await identity.sign_in_with_password("user@example.com", "pw")

    assert exc_info.value.code == "auth/network-request-failed"


async def test_update_profile_sets_display_name(identity):
    user = await identity.sign_up("new@example.com", "secret123")

    updated = await identity.update_profile(user, "Nia")

    assert updated.display_name == "Nia"
    assert identity.current_user.display_name == "Nia"


async def test_google_sign_in_new_user(identity, toolkit):
    user = await identity.sign_in_with_google(GoogleCredential(id_token="google:g@example.com"))

    assert user.is_new_user is True
    assert user.email_verified is True
    assert user.photo_url == "https://example.com/p.png"
    endpoint, payload = toolkit.requests[-1]
    assert endpoint == "accounts:signInWithIdp"
    assert "providerId=google.com" in payload["postBody"]


async def test_google_sign_in_with_access_token(identity):
    user = await identity.sign_in_with_google(GoogleCredential(access_token="google:g@example.com"))

    assert user.email == "g@example.com"


async def test_google_popup_closed_is_cancellation(identity, toolkit):
    with pytest.raises(AuthError) as exc_info:
        await identity.sign_in_with_google(GoogleCredential(error="access_denied"))

    assert exc_info.value.code == "auth/popup-closed-by-user"
    assert toolkit.requests == []


async def test_google_email_linked_to_password_account(identity, toolkit):
    toolkit.add_account("both@example.com", "secret123")

    with pytest.raises(AuthError) as exc_info:
        await identity.sign_in_with_google(GoogleCredential(id_token="google:both@example.com"))

    assert exc_info.value.code == "auth/account-exists-with-different-credential"


async def test_google_without_token_is_rejected(identity):
    with pytest.raises(AuthError) as exc_info:
        await identity.sign_in_with_google(GoogleCredential())

    assert exc_info.value.code == "auth/argument-error"


async def test_emails(identity, toolkit):
    user = await identity.sign_up("new@example.com", "secret123")

    await identity.send_email_verification(user)
    await identity.send_password_reset("new@example.com")

    assert toolkit.emails_sent == [
        {"type": "VERIFY_EMAIL", "email": "new@example.com"},
        {"type": "PASSWORD_RESET", "email": "new@example.com"},
    ]


async def test_password_reset_for_unknown_email(identity):
    with pytest.raises(AuthError) as exc_info:
        await identity.send_password_reset("ghost@example.com")

    assert exc_info.value.code == "auth/user-not-found"


async def test_reload_user_picks_up_verification(identity, toolkit):
    user = await identity.sign_up("new@example.com", "secret123")
    toolkit.accounts["new@example.com"]["emailVerified"] = True

    reloaded = await identity.reload_user(user)

    assert reloaded.email_verified is True
    assert identity.current_user.email_verified is True


async def test_sign_out_and_unsubscribe(identity):
    seen = []
    unsubscribe = identity.on_auth_state_changed(seen.append)
    await identity.sign_up("new@example.com", "secret123")

    unsubscribe()
    await identity.sign_out()

    assert identity.current_user is None
    assert len(seen) == 2


async def test_failing_listener_does_not_break_sign_in(identity):
    def broken(user):
        if user is not None:
            raise RuntimeError("boom")

    identity.on_auth_state_changed(broken)

    user = await identity.sign_up("new@example.com", "secret123")

    assert identity.current_user == user
