import pytest

from tripbudget.tracker import TripTracker


@pytest.fixture(autouse=True)
def no_google_sheets(monkeypatch):
    # tests always use the local JSON file
    monkeypatch.delenv("GOOGLE_SHEET_ID", raising=False)


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / "trips_data.json")


@pytest.fixture
def tracker(data_file):
    t = TripTracker(data_file=data_file)
    t.ensure_user("alice", email="alice@example.com", name="Alice")
    t.ensure_user("bob", email="bob@example.com", name="Bob")
    t.ensure_user("carol", email="carol@example.com", name="Carol")
    return t


@pytest.fixture
def trip(tracker):
    return tracker.create_trip("alice", "Lisbon", base_currency="USD", allocated_budget=1000,
                               start_date="2026-05-01", end_date="2026-05-05")
