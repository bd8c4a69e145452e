"""Tests for event lineups (EventFilm scheduling)."""
import pytest

from filmnight.database import Database
from filmnight.models.event import Event
from filmnight.models.event_film import EventFilm
from filmnight.services import event_service, film_service, scheduler_service
from filmnight.services.exceptions import ConflictError, NotFoundError, ValidationError
from tests.conftest import (
    SQLITE_URL, create_test_admin, create_test_event, create_test_film, future, headers_for, make_user,
)


@pytest.fixture
def screening(db):
    """An event plus three catalog films, created through the services."""
    host = make_user(db, "host@example.com")
    event = event_service.create_event(db, "Screening", future(), host.user_id, slug="screening-1")
    films = [
        film_service.create_film(db, title, f"https://letterboxd.com/film/{title.lower()}/")
        for title in ("Stalker", "Solaris", "Mirror")
    ]
    return event, films


class TestScheduling:
    """Adding films to a lineup."""

    def test_same_film_twice_conflicts(self, db, screening):
        event, (stalker, _, _) = screening
        scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id, slot_order=0)
        with pytest.raises(ConflictError):
            scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id)
        assert db.query(EventFilm).count() == 1

    def test_omitted_slot_appends(self, db, screening):
        event, films = screening
        slots = [scheduler_service.add_film_to_event(db, event.event_id, f.film_id).slot_order for f in films]
        assert slots == [0, 1, 2]

    def test_append_after_explicit_slot(self, db, screening):
        event, (stalker, solaris, _) = screening
        scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id, slot_order=5)
        slot = scheduler_service.add_film_to_event(db, event.event_id, solaris.film_id)
        assert slot.slot_order == 6

    def test_ties_ordered_by_creation(self, db, screening):
        event, (stalker, solaris, mirror) = screening
        scheduler_service.add_film_to_event(db, event.event_id, solaris.film_id, slot_order=1)
        scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id, slot_order=0)
        scheduler_service.add_film_to_event(db, event.event_id, mirror.film_id, slot_order=0)
        lineup = [s.film.title for s in scheduler_service.list_lineup(db, event.event_id)]
        assert lineup == ["Stalker", "Mirror", "Solaris"]

    def test_negative_slot_rejected(self, db, screening):
        event, (stalker, _, _) = screening
        with pytest.raises(ValidationError):
            scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id, slot_order=-1)

    def test_unknown_film(self, db, screening):
        event, _ = screening
        with pytest.raises(NotFoundError):
            scheduler_service.add_film_to_event(db, event.event_id, "missing")

    def test_unknown_event(self, db, screening):
        _, (stalker, _, _) = screening
        with pytest.raises(NotFoundError):
            scheduler_service.add_film_to_event(db, "missing", stalker.film_id)

    def test_locked_lineup_is_a_conflict(self, database, db, screening):
        """A second writer that cannot get the database lock in time gets a conflict, not a 500."""
        event, (stalker, _, _) = screening
        other = database.session_factory()
        contender = Database(SQLITE_URL, busy_timeout=0.1)
        try:
            other.query(Event).filter(Event.event_id == event.event_id).update(
                {Event.title: "Locked"}, synchronize_session=False,
            )
            with contender.session() as session:
                with pytest.raises(ConflictError):
                    scheduler_service.add_film_to_event(session, event.event_id, stalker.film_id)
        finally:
            other.rollback()
            other.close()
            contender.dispose()
        assert db.query(EventFilm).count() == 0

    def test_same_film_in_two_events(self, db, screening):
        event, (stalker, _, _) = screening
        other = event_service.create_event(db, "Encore", future(days=14), event.created_by_id)
        scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id)
        scheduler_service.add_film_to_event(db, other.event_id, stalker.film_id)
        assert db.query(EventFilm).count() == 2


class TestReorderAndRemove:
    """Moving and unscheduling films."""

    def test_reorder(self, db, screening):
        event, (stalker, solaris, _) = screening
        scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id)
        scheduler_service.add_film_to_event(db, event.event_id, solaris.film_id, note="Second feature")
        moved = scheduler_service.reorder(db, event.event_id, stalker.film_id, 3)
        assert moved.slot_order == 3
        lineup = [s.film.title for s in scheduler_service.list_lineup(db, event.event_id)]
        assert lineup == ["Solaris", "Stalker"]
        # note untouched unless given
        kept = scheduler_service.reorder(db, event.event_id, solaris.film_id, 0)
        assert kept.note == "Second feature"
        cleared = scheduler_service.reorder(db, event.event_id, solaris.film_id, 0, note=None)
        assert cleared.note is None

    def test_rejected_note_keeps_slot(self, db, screening):
        event, (stalker, _, _) = screening
        scheduler_service.add_film_to_event(db, event.event_id, stalker.film_id, slot_order=2)
        with pytest.raises(ValidationError):
            scheduler_service.reorder(db, event.event_id, stalker.film_id, 7, note="x" * 300)
        db.commit()
        slot = scheduler_service.list_lineup(db, event.event_id)[0]
        db.refresh(slot)
        assert slot.slot_order == 2

    def test_reorder_unscheduled_film(self, db, screening):
        event, (stalker, _, _) = screening
        with pytest.raises(NotFoundError):
            scheduler_service.reorder(db, event.event_id, stalker.film_id, 1)

    def test_remove_keeps_other_slots(self, db, screening):
        event, films = screening
        for film in films:
            scheduler_service.add_film_to_event(db, event.event_id, film.film_id)
        scheduler_service.remove_from_event(db, event.event_id, films[1].film_id)
        remaining = [(s.film.title, s.slot_order) for s in scheduler_service.list_lineup(db, event.event_id)]
        assert remaining == [("Stalker", 0), ("Mirror", 2)]

    def test_remove_missing_slot(self, db, screening):
        event, (stalker, _, _) = screening
        with pytest.raises(NotFoundError):
            scheduler_service.remove_from_event(db, event.event_id, stalker.film_id)


class TestLineupAPI:
    """The lineup through /api/events/{slug}/films."""

    def test_add_and_list(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin, slug="screening-1")
        film = create_test_film(client, admin)
        resp = client.post(
            "/api/events/screening-1/films", json={"film_id": film["film_id"], "slot_order": 0},
            headers=headers_for(admin),
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["film"]["title"] == "Stalker"

        resp = client.post(
            "/api/events/screening-1/films", json={"film_id": film["film_id"]}, headers=headers_for(admin),
        )
        assert resp.status_code == 409

        detail = client.get(f"/api/events/{event['slug']}").json()
        assert [s["film_id"] for s in detail["lineup"]] == [film["film_id"]]

    def test_archived_event_is_read_only(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        film = create_test_film(client, admin)
        client.post(f"/api/events/{event['slug']}/archive", headers=headers_for(admin))
        resp = client.post(
            f"/api/events/{event['slug']}/films", json={"film_id": film["film_id"]}, headers=headers_for(admin),
        )
        assert resp.status_code == 400

    def test_negative_slot_is_schema_error(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        film = create_test_film(client, admin)
        resp = client.post(
            f"/api/events/{event['slug']}/films", json={"film_id": film["film_id"], "slot_order": -1},
            headers=headers_for(admin),
        )
        assert resp.status_code == 422

    def test_reorder_and_remove(self, client):
        admin = create_test_admin(client)
        event = create_test_event(client, admin)
        film = create_test_film(client, admin)
        slug = event["slug"]
        client.post(f"/api/events/{slug}/films", json={"film_id": film["film_id"]}, headers=headers_for(admin))

        resp = client.patch(
            f"/api/events/{slug}/films/{film['film_id']}", json={"slot_order": 4}, headers=headers_for(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["slot_order"] == 4

        assert client.delete(f"/api/events/{slug}/films/{film['film_id']}", headers=headers_for(admin)).status_code == 204
        assert client.get(f"/api/events/{slug}/films").json() == []
        resp = client.delete(f"/api/events/{slug}/films/{film['film_id']}", headers=headers_for(admin))
        assert resp.status_code == 404
