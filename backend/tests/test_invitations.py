"""Tests for invitations, RSVP transitions and headcounts."""
from datetime import datetime, timezone
import pytest

from filmnight.models.invitation import Invitation, InvitationStatus
from filmnight.services import event_service, invitation_service
from filmnight.services.exceptions import ConflictError, NotFoundError, ServiceError, ValidationError
from filmnight.timeutils import as_aware
from tests.conftest import (
    create_test_admin, create_test_event, create_test_film, create_test_user, future, headers_for, make_user,
)


@pytest.fixture
def event(db):
    host = make_user(db, "host@example.com")
    return event_service.create_event(db, "Screening", future(), host.user_id, slug="screening-1")


def _fixed_clock(monkeypatch, *instants):
    """Make successive utcnow() calls in the invitation service return ``instants``."""
    values = iter(instants)
    monkeypatch.setattr("filmnight.services.invitation_service.utcnow", lambda: next(values))


class TestInvite:
    """Invitation creation and per-event email uniqueness."""

    def test_invite_is_pending_with_token(self, db, event):
        invitation = invitation_service.invite(db, event.event_id, "A@X.com")
        assert invitation.status == InvitationStatus.PENDING
        assert invitation.email == "a@x.com"
        assert invitation.rsvp_at is None
        assert invitation.plus_ones == 0
        assert len(invitation.token) >= 43

    def test_duplicate_email_per_event_conflicts(self, db, event):
        invitation_service.invite(db, event.event_id, "a@x.com")
        with pytest.raises(ConflictError):
            invitation_service.invite(db, event.event_id, "a@x.com")
        other = event_service.create_event(db, "Encore", future(days=14), event.created_by_id)
        assert invitation_service.invite(db, other.event_id, "a@x.com").event_id == other.event_id
        assert db.query(Invitation).count() == 2

    def test_invalid_email(self, db, event):
        with pytest.raises(ValidationError):
            invitation_service.invite(db, event.event_id, "not-an-email")

    def test_malformed_emails_rejected(self, db, event):
        for email in ("a@.x.com", "a@x..com", "<a>@x.com", "a@x.c,om"):
            with pytest.raises(ValidationError):
                invitation_service.invite(db, event.event_id, email)
        assert db.query(Invitation).count() == 0

    def test_negative_plus_ones(self, db, event):
        with pytest.raises(ValidationError):
            invitation_service.invite(db, event.event_id, "a@x.com", plus_ones=-1)

    def test_unknown_event(self, db):
        with pytest.raises(NotFoundError):
            invitation_service.invite(db, "missing", "a@x.com")

    def test_links_existing_user(self, db, event):
        guest = make_user(db, "guest@example.com")
        invitation = invitation_service.invite(db, event.event_id, "guest@example.com")
        assert invitation.user_id == guest.user_id

    def test_find_invitation_for_resend(self, db, event):
        created = invitation_service.invite(db, event.event_id, "a@x.com")
        found = invitation_service.find_invitation(db, event.event_id, "A@x.com")
        assert found.invitation_id == created.invitation_id
        assert found.token == created.token
        assert invitation_service.find_invitation(db, event.event_id, "b@x.com") is None


class TestTokens:
    """Token generation and collision handling."""

    def test_tokens_are_unique(self):
        tokens = {invitation_service.generate_token() for _ in range(10_000)}
        assert len(tokens) == 10_000

    def test_token_collision_is_retried(self, db, event, monkeypatch):
        tokens = iter(["tok-a", "tok-a", "tok-b"])
        monkeypatch.setattr(invitation_service, "generate_token", lambda: next(tokens))
        first = invitation_service.invite(db, event.event_id, "a@x.com")
        second = invitation_service.invite(db, event.event_id, "b@x.com")
        assert first.token == "tok-a"
        assert second.token == "tok-b"
        assert db.query(Invitation).count() == 2

    def test_token_attempts_exhausted(self, db, event, monkeypatch):
        monkeypatch.setattr(invitation_service, "generate_token", lambda: "tok-a")
        invitation_service.invite(db, event.event_id, "a@x.com")
        with pytest.raises(ServiceError):
            invitation_service.invite(db, event.event_id, "b@x.com")
        assert db.query(Invitation).count() == 1


class TestRSVP:
    """Token RSVPs update the single invitation row in place."""

    def test_decline_then_accept(self, db, event, monkeypatch):
        first = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
        second = datetime(2030, 1, 2, 12, 0, tzinfo=timezone.utc)
        _fixed_clock(monkeypatch, first, second)
        token = invitation_service.invite(db, event.event_id, "a@x.com").token

        declined = invitation_service.rsvp(db, token, "DECLINED")
        assert declined.status == InvitationStatus.DECLINED
        assert as_aware(declined.rsvp_at) == first

        accepted = invitation_service.rsvp(db, token, InvitationStatus.ACCEPTED, plus_ones=1)
        assert accepted.status == InvitationStatus.ACCEPTED
        assert accepted.plus_ones == 1
        assert as_aware(accepted.rsvp_at) == second
        assert db.query(Invitation).count() == 1

    def test_repeat_rsvp_is_idempotent(self, db, event, monkeypatch):
        first = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
        second = datetime(2030, 1, 1, 12, 5, tzinfo=timezone.utc)
        _fixed_clock(monkeypatch, first, second)
        token = invitation_service.invite(db, event.event_id, "a@x.com").token
        invitation_service.rsvp(db, token, "MAYBE", plus_ones=2, note="Might be late")
        again = invitation_service.rsvp(db, token, "MAYBE", plus_ones=2, note="Might be late")
        assert (again.status, again.plus_ones, again.note) == (InvitationStatus.MAYBE, 2, "Might be late")
        assert as_aware(again.rsvp_at) == second
        assert db.query(Invitation).count() == 1

    def test_omitted_fields_are_kept(self, db, event):
        token = invitation_service.invite(db, event.event_id, "a@x.com").token
        invitation_service.rsvp(db, token, "ACCEPTED", plus_ones=2, note="Bringing snacks")
        changed = invitation_service.rsvp(db, token, "MAYBE")
        assert changed.plus_ones == 2
        assert changed.note == "Bringing snacks"

    def test_pending_is_not_a_response(self, db, event):
        token = invitation_service.invite(db, event.event_id, "a@x.com").token
        with pytest.raises(ValidationError):
            invitation_service.rsvp(db, token, "PENDING")
        invitation_service.rsvp(db, token, "ACCEPTED")
        with pytest.raises(ValidationError):
            invitation_service.rsvp(db, token, "PENDING")

    def test_unknown_status(self, db, event):
        token = invitation_service.invite(db, event.event_id, "a@x.com").token
        with pytest.raises(ValidationError):
            invitation_service.rsvp(db, token, "ATTENDING")

    def test_negative_plus_ones(self, db, event):
        token = invitation_service.invite(db, event.event_id, "a@x.com").token
        with pytest.raises(ValidationError):
            invitation_service.rsvp(db, token, "ACCEPTED", plus_ones=-1)

    def test_rejected_response_writes_nothing(self, db, event):
        token = invitation_service.invite(db, event.event_id, "a@x.com").token
        with pytest.raises(ValidationError):
            invitation_service.rsvp(db, token, "ACCEPTED", plus_ones=3, note="x" * 600)
        db.commit()
        invitation = invitation_service.get_invitation_by_token(db, token)
        db.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING
        assert invitation.plus_ones == 0
        assert invitation.note is None
        assert invitation.rsvp_at is None

    def test_unknown_token(self, db, event):
        with pytest.raises(NotFoundError):
            invitation_service.rsvp(db, "nope", "ACCEPTED")


class TestUserRSVP:
    """RSVP by (event, user) for signed-in guests."""

    def test_rsvp_by_linked_user(self, db, event):
        guest = make_user(db, "guest@example.com")
        invitation_service.invite(db, event.event_id, "guest@example.com")
        invitation = invitation_service.rsvp_by_event_and_user(db, event.event_id, guest.user_id, "ACCEPTED")
        assert invitation.status == InvitationStatus.ACCEPTED

    def test_rsvp_falls_back_to_email_and_links(self, db, event):
        invitation_service.invite(db, event.event_id, "guest@example.com")
        guest = make_user(db, "guest@example.com")
        invitation = invitation_service.rsvp_by_event_and_user(db, event.event_id, guest.user_id, "DECLINED")
        assert invitation.status == InvitationStatus.DECLINED
        assert invitation.user_id == guest.user_id

    def test_rejected_response_does_not_link_user(self, db, event):
        invitation_service.invite(db, event.event_id, "guest@example.com")
        guest = make_user(db, "guest@example.com")
        with pytest.raises(ValidationError):
            invitation_service.rsvp_by_event_and_user(db, event.event_id, guest.user_id, "PENDING")
        db.commit()
        invitation = db.query(Invitation).filter(Invitation.event_id == event.event_id).one()
        db.refresh(invitation)
        assert invitation.user_id is None
        assert invitation.status == InvitationStatus.PENDING

    def test_uninvited_user(self, db, event):
        stranger = make_user(db, "stranger@example.com")
        with pytest.raises(NotFoundError):
            invitation_service.rsvp_by_event_and_user(db, event.event_id, stranger.user_id, "ACCEPTED")

    def test_link_user_invitations(self, db, event):
        other = event_service.create_event(db, "Encore", future(days=14), event.created_by_id)
        invitation_service.invite(db, event.event_id, "guest@example.com")
        invitation_service.invite(db, other.event_id, "guest@example.com")
        guest = make_user(db, "guest@example.com")
        assert invitation_service.link_user_invitations(db, guest) == 2
        assert invitation_service.link_user_invitations(db, guest) == 0


class TestHeadcount:
    """Per-status counts."""

    def test_headcount(self, db, event):
        tokens = [invitation_service.invite(db, event.event_id, f"g{i}@x.com").token for i in range(5)]
        invitation_service.rsvp(db, tokens[0], "ACCEPTED", plus_ones=2)
        invitation_service.rsvp(db, tokens[1], "ACCEPTED")
        invitation_service.rsvp(db, tokens[2], "MAYBE")
        invitation_service.rsvp(db, tokens[3], "DECLINED")
        counts = invitation_service.event_headcount(db, event.event_id)
        assert counts == {
            "pending": 1,
            "accepted": 2,
            "declined": 1,
            "maybe": 1,
            "invited": 5,
            "attending": 3,
            "expected_guests": 4,
        }

    def test_headcount_unknown_event(self, db):
        with pytest.raises(NotFoundError):
            invitation_service.event_headcount(db, "missing")


class TestInvitationAPI:
    """Admin invitation routes and the public token routes."""

    def _invite(self, client, admin, event, email="a@x.com", **extra):
        return client.post(
            "/api/invitations/",
            json={"event_id": event["event_id"], "email": email, **extra},
            headers=headers_for(admin),
        )

    def test_invite_and_rsvp_flow(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        resp = self._invite(client, admin, event)
        assert resp.status_code == 201, resp.text
        token = resp.json()["token"]

        page = client.get(f"/api/rsvp/{token}")
        assert page.status_code == 200
        assert page.json()["event"]["slug"] == event["slug"]

        resp = client.post(f"/api/rsvp/{token}", json={"status": "DECLINED"})
        assert resp.json()["status"] == "DECLINED"
        assert resp.json()["rsvp_at"] is not None

        resp = client.post(f"/api/rsvp/{token}", json={"status": "ACCEPTED", "plus_ones": 1})
        assert resp.json()["status"] == "ACCEPTED"
        assert resp.json()["plus_ones"] == 1

        invitations = client.get(f"/api/invitations/?event_id={event['event_id']}", headers=headers_for(admin)).json()
        assert len(invitations) == 1

    def test_invalid_email_is_schema_error(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        assert self._invite(client, admin, event, email="a@x..com").status_code == 422

    def test_rsvp_page_shows_lineup(self, client):
        admin = create_test_admin(client)
        stalker = create_test_film(client, admin)
        mirror = create_test_film(client, admin, title="Mirror", reference_url="https://letterboxd.com/film/mirror/")
        event = create_test_event(
            client, admin,
            lineup=[{"film_id": mirror["film_id"], "slot_order": 1}, {"film_id": stalker["film_id"], "slot_order": 0}],
        )
        token = self._invite(client, admin, event).json()["token"]

        page = client.get(f"/api/rsvp/{token}").json()
        assert [s["film"]["title"] for s in page["event"]["lineup"]] == ["Stalker", "Mirror"]
        resp = client.post(f"/api/rsvp/{token}", json={"status": "MAYBE"})
        assert [s["film"]["title"] for s in resp.json()["event"]["lineup"]] == ["Stalker", "Mirror"]

    def test_duplicate_invite_then_lookup(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        token = self._invite(client, admin, event).json()["token"]
        assert self._invite(client, admin, event, email="A@x.com").status_code == 409
        resp = client.get(
            "/api/invitations/lookup", params={"event_id": event["event_id"], "email": "a@x.com"},
            headers=headers_for(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["token"] == token

    def test_guest_cannot_invite(self, client):
        admin = create_test_admin(client)
        guest = create_test_user(client, email="guest@example.com")
        event = create_test_event(client, admin)
        assert self._invite(client, guest, event).status_code == 403

    def test_negative_plus_ones_is_schema_error(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        token = self._invite(client, admin, event).json()["token"]
        resp = client.post(f"/api/rsvp/{token}", json={"status": "ACCEPTED", "plus_ones": -1})
        assert resp.status_code == 422

    def test_pending_rsvp_rejected(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        token = self._invite(client, admin, event).json()["token"]
        resp = client.post(f"/api/rsvp/{token}", json={"status": "PENDING"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "status"

    def test_unknown_token(self, client):
        assert client.get("/api/rsvp/not-a-token").status_code == 404

    def test_archived_event_blocks_rsvp_and_invites(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        token = self._invite(client, admin, event).json()["token"]
        client.post(f"/api/events/{event['slug']}/archive", headers=headers_for(admin))
        assert client.post(f"/api/rsvp/{token}", json={"status": "ACCEPTED"}).status_code == 400
        assert self._invite(client, admin, event, email="b@x.com").status_code == 400

    def test_user_rsvp_and_headcount(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        self._invite(client, admin, event, email="guest@example.com")
        guest = create_test_user(client, email="guest@example.com")

        resp = client.post(
            f"/api/events/{event['slug']}/rsvp", json={"status": "ACCEPTED", "plus_ones": 1},
            headers=headers_for(guest),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["user_id"] == guest["user_id"]

        counts = client.get(f"/api/events/{event['slug']}/headcount", headers=headers_for(admin)).json()
        assert counts["accepted"] == 1
        assert counts["expected_guests"] == 2

    def test_user_rsvp_requires_identity(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        resp = client.post(f"/api/events/{event['slug']}/rsvp", json={"status": "ACCEPTED"})
        assert resp.status_code == 401

    def test_revoke(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        invitation = self._invite(client, admin, event).json()
        resp = client.delete(f"/api/invitations/{invitation['invitation_id']}", headers=headers_for(admin))
        assert resp.status_code == 204
        assert client.get(f"/api/rsvp/{invitation['token']}").status_code == 404
        # the address can be invited again
        assert self._invite(client, admin, event).status_code == 201
