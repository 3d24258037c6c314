import json

from fx_signal_engine.alert_store import AlertStore
from fx_signal_engine.models import StoredAlert


def _alert(i: int) -> StoredAlert:
    return StoredAlert(
        id=f"a{i}", pair="EURUSD", action="BUY", current_price=1.08, target_price=1.09,
        confidence=90.0, timestamp=100.0 + i, potential_profit_pct=0.93,
    )


def test_missing_file_starts_empty(tmp_path):
    store = AlertStore(str(tmp_path / "nope.json"))
    assert store.alerts == []
    assert store.notified_ids == []
    assert store.last_alert_ts is None


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "alerts.json"
    path.write_text("{not json", encoding="utf-8")
    store = AlertStore(str(path))
    assert store.alerts == []


def test_save_and_reload(tmp_path):
    path = tmp_path / "nested" / "alerts.json"
    store = AlertStore(str(path))
    store.alerts = [_alert(2), _alert(1)]
    store.alerts[0].target_reached = True
    store.notified_ids = ["a1", "a2"]
    store.last_alert_ts = 102.0
    store.save()

    data = json.loads(path.read_text(encoding="utf-8"))
    assert "updated_at" in data

    again = AlertStore(str(path))
    assert [a.id for a in again.alerts] == ["a2", "a1"]
    assert again.alerts[0].target_reached is True
    assert again.alerts[1].read is False
    assert again.notified_ids == ["a1", "a2"]
    assert again.last_alert_ts == 102.0
