"""비밀번호 재설정 상태 머신"""

import asyncio

import pytest

from app.schemas.auth import AuthErrorOut, RecoverySession
from app.services import recovery
from app.services.recovery import (
    RecoveryForm,
    RequestState,
    UpdateState,
    open_recovery_link,
    parse_recovery_link,
    submit_new_password,
    submit_recovery_form,
    submit_reset_request,
)

LINK = "https://habits.example.com/auth/reset-password"
REDIRECT = "http://localhost:3000/auth/reset-password?type=update"


def _update_state():
    return UpdateState(session=RecoverySession(access_token="sat", refresh_token="srt"))


class TestParseRecoveryLink:
    def test_reads_tokens_from_fragment(self):
        intent = parse_recovery_link(f"{LINK}#type=recovery&access_token=AT&refresh_token=RT")

        assert intent is not None
        assert (intent.access_token, intent.refresh_token) == ("AT", "RT")
        assert intent.has_tokens

    def test_ignores_query_string(self):
        assert parse_recovery_link(f"{LINK}?type=recovery&access_token=AT&refresh_token=RT") is None

    def test_other_link_types(self):
        assert parse_recovery_link(f"{LINK}#type=signup&access_token=AT&refresh_token=RT") is None
        assert parse_recovery_link(LINK) is None
        assert parse_recovery_link("") is None

    def test_marker_without_tokens(self):
        intent = parse_recovery_link(f"{LINK}#type=recovery&access_token=AT")

        assert intent is not None
        assert not intent.has_tokens


class TestOpenRecoveryLink:
    def test_exchange_success_moves_to_update(self, gateway):
        state = asyncio.run(open_recovery_link(
            RequestState(), f"{LINK}#type=recovery&access_token=AT&refresh_token=RT", gateway,
        ))

        assert isinstance(state, UpdateState)
        assert gateway.calls == [("exchange", "AT", "RT")]
        assert state.session.access_token == "session-AT"
        assert state.server_error is None

    def test_missing_tokens_stays_in_request(self, gateway):
        state = asyncio.run(open_recovery_link(RequestState(), f"{LINK}#type=recovery", gateway))

        assert isinstance(state, RequestState)
        assert state.server_error == "Missing reset tokens in the link."
        assert gateway.calls == []

    def test_rejected_exchange_shows_plain_message(self, gateway):
        gateway.exchange_error = AuthErrorOut(code="VERIFICATION_FAILED", message="jwt expired")

        state = asyncio.run(open_recovery_link(
            RequestState(), f"{LINK}#type=recovery&access_token=AT&refresh_token=RT", gateway,
        ))

        assert isinstance(state, RequestState)
        assert state.server_error == "Invalid or expired reset link."

    def test_exchange_exception(self, gateway):
        gateway.exchange_raises = ConnectionError("network down")

        state = asyncio.run(open_recovery_link(
            RequestState(), f"{LINK}#type=recovery&access_token=AT&refresh_token=RT", gateway,
        ))

        assert isinstance(state, RequestState)
        assert state.server_error == recovery.LINK_PROCESSING_ERROR_MESSAGE

    def test_plain_link_leaves_state_untouched(self, gateway):
        start = RequestState(email="a@b.com")

        assert asyncio.run(open_recovery_link(start, LINK, gateway)) is start

    def test_tokens_are_exchanged_once(self, gateway):
        start = _update_state()
        url = f"{LINK}#type=recovery&access_token=AT&refresh_token=RT"

        assert asyncio.run(open_recovery_link(start, url, gateway)) is start
        assert gateway.calls == []

    @pytest.mark.parametrize("failure", ["rejected", "raised"])
    def test_failed_link_is_not_exchanged_again(self, gateway, failure):
        if failure == "rejected":
            gateway.exchange_error = AuthErrorOut(code="VERIFICATION_FAILED", message="jwt expired")
        else:
            gateway.exchange_raises = ConnectionError("network down")
        url = f"{LINK}#type=recovery&access_token=AT&refresh_token=RT"

        async def run():
            first = await open_recovery_link(RequestState(), url, gateway)
            second = await open_recovery_link(first, url, gateway)
            return first, second

        first, second = asyncio.run(run())

        assert second is first
        assert gateway.calls == [("exchange", "AT", "RT")]
        assert "AT" not in first.consumed_link

    def test_new_link_after_failure_is_exchanged(self, gateway):
        gateway.exchange_error = AuthErrorOut(code="VERIFICATION_FAILED", message="jwt expired")

        async def run():
            failed = await open_recovery_link(
                RequestState(), f"{LINK}#type=recovery&access_token=AT&refresh_token=RT", gateway,
            )
            gateway.exchange_error = None
            return await open_recovery_link(
                failed, f"{LINK}#type=recovery&access_token=AT2&refresh_token=RT2", gateway,
            )

        state = asyncio.run(run())

        assert isinstance(state, UpdateState)
        assert [c[1] for c in gateway.calls] == ["AT", "AT2"]


class TestSubmitResetRequest:
    def test_sends_reset_email(self, gateway):
        state = asyncio.run(submit_reset_request(RequestState(), " a@b.com ", gateway, REDIRECT))

        assert gateway.calls == [("reset", "a@b.com", REDIRECT)]
        assert state.success_message == "Password reset email sent"
        assert state.email == "a@b.com"

    def test_invalid_email(self, gateway):
        state = asyncio.run(submit_reset_request(RequestState(), "not-an-email", gateway, REDIRECT))

        assert state.field_errors == {"email": "Invalid email format"}
        assert gateway.calls == []

    def test_backend_error_and_retry_clears_it(self, gateway):
        gateway.reset_error = AuthErrorOut(code="RATE_LIMITED", message="Too many requests. Please try again later.")
        failed = asyncio.run(submit_reset_request(RequestState(), "a@b.com", gateway, REDIRECT))
        assert failed.server_error == "Too many requests. Please try again later."

        gateway.reset_error = None
        retried = asyncio.run(submit_reset_request(failed, "a@b.com", gateway, REDIRECT))
        assert retried.server_error is None
        assert retried.success_message == "Password reset email sent"


class TestSubmitNewPassword:
    def test_success_schedules_redirect(self, gateway):
        state = asyncio.run(submit_new_password(_update_state(), "s3cret-pass", "s3cret-pass", gateway))

        assert gateway.calls == [("set_password", "sat", "s3cret-pass")]
        assert state.success_message == "Password updated successfully"
        assert state.redirect_to == "/auth/login"
        assert state.redirect_after_seconds == 2.0
        assert state.completed

    def test_completed_flow_ignores_further_submissions(self, gateway):
        async def run():
            done = await submit_new_password(_update_state(), "password1", "password1", gateway)
            again = await submit_recovery_form(
                done, RecoveryForm(new_password="password2", confirm_password="password2"), gateway, REDIRECT,
            )
            return done, again

        done, again = asyncio.run(run())

        assert again is done
        assert gateway.calls == [("set_password", "sat", "password1")]

    def test_failed_submission_can_be_retried(self, gateway):
        gateway.set_password_error = AuthErrorOut(code="WEAK_PASSWORD", message="Password is too weak")

        async def run():
            failed = await submit_new_password(_update_state(), "password1", "password1", gateway)
            gateway.set_password_error = None
            return failed, await submit_new_password(failed, "better-pass", "better-pass", gateway)

        failed, retried = asyncio.run(run())

        assert not failed.completed
        assert retried.completed
        assert [c[2] for c in gateway.calls] == ["password1", "better-pass"]

    @pytest.mark.parametrize("new_password, confirm, errors", [
        ("short", "short", {"new_password": "Password must be at least 8 characters"}),
        ("s3cret-pass", "s3cret-pasS", {"confirm_password": "Passwords don't match"}),
    ])
    def test_local_validation(self, gateway, new_password, confirm, errors):
        state = asyncio.run(submit_new_password(_update_state(), new_password, confirm, gateway))

        assert state.field_errors == errors
        assert gateway.calls == []
        assert state.redirect_to is None

    def test_backend_error(self, gateway):
        gateway.set_password_error = AuthErrorOut(code="WEAK_PASSWORD", message="Password is too weak")

        state = asyncio.run(submit_new_password(_update_state(), "password1", "password1", gateway))

        assert isinstance(state, UpdateState)
        assert state.server_error == "Password is too weak"
        assert state.redirect_to is None


def test_submit_dispatches_on_mode(gateway):
    async def run():
        requested = await submit_recovery_form(
            RequestState(), RecoveryForm(email="a@b.com"), gateway, REDIRECT,
        )
        updated = await submit_recovery_form(
            _update_state(), RecoveryForm(new_password="password1", confirm_password="password1"), gateway, REDIRECT,
        )
        return requested, updated

    requested, updated = asyncio.run(run())

    assert requested.success_message == "Password reset email sent"
    assert updated.success_message == "Password updated successfully"
    assert [c[0] for c in gateway.calls] == ["reset", "set_password"]
