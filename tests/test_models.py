"""Tests for TreinUp data models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from treinup.models.outcome import BootstrapResult
from treinup.models.profile import Profile, ProfileRole
from treinup.models.provisioning import CreateProfileRequest, FunctionResponse, ProvisioningStep
from treinup.models.session import CredentialKey, Session
from treinup.models.subscription import Plan, Subscription


class TestProfile:
    """Tests for the Profile document layout."""

    def test_defaults_on_document(self):
        profile = Profile(user_id="u1", name="Ann", email="a@x.com")
        doc = profile.to_document()

        assert doc["userId"] == "u1"
        assert doc["role"] == "USER"
        assert doc["pref_darkMode"] is True
        assert doc["pref_notifications"] is True
        assert doc["pref_offlineMode"] is False
        assert doc["pref_language"] == "Português"
        assert doc["privacy_publicProfile"] is True
        assert doc["privacy_showWorkouts"] is True
        assert doc["privacy_showProgress"] is False
        assert doc["privacy_twoFactorAuth"] is False
        assert doc["stats_workouts"] == 0
        assert doc["stats_classes"] == 0
        assert doc["stats_achievements"] == 0

    def test_tenant_only_when_set(self):
        assert "tenant_id" not in Profile(user_id="u1", name="A", email="e").to_document()
        doc = Profile(user_id="u1", name="A", email="e", tenant_id="t1").to_document()
        assert doc["tenant_id"] == "t1"

    def test_from_document_fills_missing_columns(self):
        profile = Profile.from_document({
            "id": "p1",
            "userId": "u1",
            "name": "Ann",
            "email": "a@x.com",
            "role": "TRAINER",
            "pref_darkMode": False,
            "stats_workouts": 12,
        })

        assert profile.id == "p1"
        assert profile.role == ProfileRole.TRAINER
        assert profile.preferences.dark_mode is False
        assert profile.preferences.haptic_feedback is True
        assert profile.stats.workouts == 12
        assert profile.privacy.show_progress is False

    def test_staff_roles(self):
        assert ProfileRole.OWNER.is_staff
        assert ProfileRole.TRAINER.is_staff
        assert not ProfileRole.USER.is_staff


class TestSubscription:
    """Tests for subscription date handling."""

    def _make(self, start: datetime, days: int = 30, stored_active: bool = True) -> Subscription:
        return Subscription(
            profile_id="p1",
            plan_id="plan-30",
            tenant_id="t1",
            start_date=start,
            end_date=start + timedelta(days=days),
            stored_active=stored_active,
        )

    def test_end_must_follow_start(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        with pytest.raises(ValidationError):
            Subscription(
                profile_id="p1",
                plan_id="plan-30",
                tenant_id="t1",
                start_date=start,
                end_date=start,
            )

    def test_active_window_is_half_open(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        sub = self._make(start)

        assert sub.is_active_at(start)
        assert sub.is_active_at(start + timedelta(days=29, hours=23))
        assert not sub.is_active_at(start + timedelta(days=30))
        assert not sub.is_active_at(start - timedelta(seconds=1))

    def test_is_active_ignores_stored_flag(self):
        expired = self._make(datetime.now(UTC) - timedelta(days=60), stored_active=True)
        current = self._make(datetime.now(UTC) - timedelta(days=1), stored_active=False)

        assert expired.is_active is False
        assert current.is_active is True

    def test_document_round_trip_keeps_flag(self):
        sub = self._make(datetime(2026, 3, 1, tzinfo=UTC), stored_active=False)
        doc = sub.to_document()

        assert doc["isActive"] is False
        assert doc["startDate"] == "2026-03-01T00:00:00+00:00"
        restored = Subscription.from_document({**doc, "id": "s1"})
        assert restored.end_date == sub.end_date
        assert restored.stored_active is False

    def test_plan_from_document(self):
        plan = Plan.from_document({
            "id": "plan-30",
            "name": "Mensal",
            "durationDays": 30,
            "price": 99.0,
            "tenant_id": "t1",
        })
        assert plan.duration_days == 30


class TestSessionAndPayloads:
    """Tests for session and function payload models."""

    def test_session_credentials_skip_missing_tenant(self):
        creds = Session(session_token="s", auth_token="a").to_credentials()
        assert set(creds) == {CredentialKey.SESSION_TOKEN, CredentialKey.AUTH_TOKEN}

    def test_function_payloads_are_camel_case(self):
        request = CreateProfileRequest(user_id="u1", name="Ann", email="a@x.com", role="USER")
        assert request.model_dump(by_alias=True)["userId"] == "u1"
        assert CreateProfileRequest.model_validate({"userId": "u2"}).user_id == "u2"

    def test_function_response_parses_wire_shape(self):
        response = FunctionResponse.model_validate({
            "ok": False,
            "code": "partial_provisioning",
            "profileId": "p1",
            "pendingSteps": ["membership"],
        })
        assert response.profile_id == "p1"
        assert response.pending_steps == [ProvisioningStep.MEMBERSHIP]

    def test_bootstrap_result_defaults(self):
        result = BootstrapResult(success=False, error="invalid_credentials")
        assert result.pending_steps == []
        assert result.identity is None
