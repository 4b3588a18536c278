from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from vasudha_access.errors import ConflictError, TransientError
from vasudha_access.models import Profile
from vasudha_access.repositories import ProfileRepository


class FakeAPIError(Exception):
    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


ROW = {
    "id": "u-1",
    "full_name": "Jane Doe",
    "username": "janed",
    "email": "jane@real.com",
    "phone": None,
    "role": "buyer",
    "approved": False,
    "blocked": False,
    "created_at": "2026-01-01T00:00:00+00:00",
}


@pytest.fixture()
def db():
    return MagicMock()


@pytest.fixture()
def table(db):
    return db.supabase.table.return_value


@pytest.fixture()
def repo(db, logger):
    return ProfileRepository(db=db, logger=logger)


def test_insert_is_plain_insert(repo, table):
    table.insert.return_value.execute.return_value = SimpleNamespace(data=[ROW])
    profile = Profile(**{k: v for k, v in ROW.items() if k != "created_at"})

    created = repo.insert(profile)

    assert created.id == "u-1"
    assert "created_at" not in table.insert.call_args.args[0]
    table.upsert.assert_not_called()


def test_insert_unique_violation_is_conflict(repo, table):
    table.insert.return_value.execute.side_effect = FakeAPIError(
        'duplicate key value violates unique constraint "profiles_pkey"', code="23505",
    )
    with pytest.raises(ConflictError):
        repo.insert(Profile(id="u-1", full_name="Jane", role="buyer"))


def test_fetch_by_id(repo, table):
    chain = table.select.return_value.eq.return_value.limit.return_value
    chain.execute.return_value = SimpleNamespace(data=[ROW])
    assert repo.fetch_by_id("u-1").username == "janed"

    chain.execute.return_value = SimpleNamespace(data=[])
    assert repo.fetch_by_id("u-2") is None


def test_fetch_failure_is_transient(repo, table):
    table.select.side_effect = ConnectionError("network down")
    with pytest.raises(TransientError):
        repo.fetch_by_id("u-1")


def _not_initialised(_self):
    raise RuntimeError("Supabase client is not initialised.")


def test_unconfigured_client_is_transient(logger):
    db = MagicMock()
    type(db).supabase = property(_not_initialised)
    with pytest.raises(TransientError):
        ProfileRepository(db=db, logger=logger).fetch_by_id("u-1")


def test_username_exists(repo, table):
    chain = table.select.return_value.eq.return_value.limit.return_value
    chain.execute.return_value = SimpleNamespace(data=[{"id": "u-1"}])
    assert repo.username_exists("janed") is True
    table.select.return_value.eq.assert_called_with("username", "janed")


def test_update_only_toggles(repo, table):
    with pytest.raises(ValueError):
        repo.update("u-1", {"role": "admin"})

    table.update.return_value.eq.return_value.execute.return_value = SimpleNamespace(
        data=[{**ROW, "approved": True}]
    )
    assert repo.update("u-1", {"approved": True}).approved is True


def test_list_where_filters(repo, table):
    query = table.select.return_value
    query.eq.return_value = query
    query.execute.return_value = SimpleNamespace(data=[ROW])

    profiles = repo.list_where(approved=False, blocked=False)

    assert [p.id for p in profiles] == ["u-1"]
    assert query.eq.call_count == 2


def test_elevated_repository_uses_admin_client(db, logger):
    repo = ProfileRepository(db=db, logger=logger, elevated=True)
    chain = db.supabase_admin.table.return_value.select.return_value.eq.return_value.limit.return_value
    chain.execute.return_value = SimpleNamespace(data=[])

    assert repo.fetch_by_id("u-1") is None
    db.supabase.table.assert_not_called()
