import httpx
import pytest

from noticeboard.config.settings import get_settings
from noticeboard.core.cache import FileCache
from noticeboard.ingestion.weather_client import WeatherClient, parse_alerts
from noticeboard.services.weather_alerts import WeatherAlertPublisher, alert_priority


def _settings_with_key():
    settings = get_settings()
    return settings.model_copy(update={"weather": settings.weather.model_copy(update={"api_key": "k"})})


def test_parse_alerts_skips_malformed_entries():
    payload = {
        "alerts": [
            {"event": "Flood Warning", "description": "River rising", "start": "1700000000", "sender_name": "NWS"},
            {"event": ""},
            "garbage",
            {"event": "Wind Advisory", "end": None},
        ]
    }
    alerts = parse_alerts(payload)
    assert [a.event for a in alerts] == ["Flood Warning", "Wind Advisory"]
    assert alerts[0].start_unix == 1700000000
    assert alerts[1].end_unix is None
    assert parse_alerts({"current": {}}) == []
    assert parse_alerts(None) == []


@pytest.mark.parametrize(
    "event,expected",
    [
        ("Tornado Warning", "emergency"),
        ("Severe Thunderstorm Watch", "high"),
        ("Heavy Snow Advisory", "medium"),
        ("Air Quality Alert", "low"),
    ],
)
def test_alert_priority(event, expected):
    assert alert_priority(event, get_settings().weather.priorities) == expected


def test_get_alerts_requires_an_api_key(tmp_path):
    settings = get_settings()
    settings = settings.model_copy(update={"weather": settings.weather.model_copy(update={"api_key": None})})
    client = WeatherClient(settings, FileCache(tmp_path))
    with pytest.raises(RuntimeError):
        client.get_alerts(lat=40.0, lon=-74.0)


def test_get_alerts_returns_empty_on_upstream_error(monkeypatch, tmp_path):
    import noticeboard.ingestion.weather_client as weather_client

    def boom(url, **kwargs):
        raise httpx.ReadTimeout("slow", request=httpx.Request("GET", url))

    monkeypatch.setattr(weather_client, "get_json", boom)
    client = WeatherClient(_settings_with_key(), FileCache(tmp_path))
    assert client.get_alerts(lat=40.0, lon=-74.0) == []


def test_publisher_creates_alert_notices(monkeypatch, tmp_path, service):
    import noticeboard.ingestion.weather_client as weather_client

    requests = []

    def fake_get_json(url, *, params=None, headers=None, timeout_seconds=15):
        requests.append((url, params))
        return {
            "alerts": [
                {"event": "Hurricane Warning", "description": "Evacuate low areas"},
                {"event": "Rain", "description": "Bring an umbrella"},
            ]
        }

    monkeypatch.setattr(weather_client, "get_json", fake_get_json)
    settings = _settings_with_key()
    client = WeatherClient(settings, FileCache(tmp_path / "cache"))
    publisher = WeatherAlertPublisher(service, client, settings)

    published = publisher.publish(latitude=40.0, longitude=-74.0)

    assert requests[0][0].endswith("/onecall")
    assert requests[0][1]["exclude"] == "minutely,hourly,daily"
    assert [p.notice.title for p in published] == ["Weather Alert: Hurricane Warning", "Weather Alert: Rain"]
    assert [p.notice.priority for p in published] == ["emergency", "medium"]
    assert published[0].notice.author_id == "weather-system"
    assert published[0].notification.title == "🚨 EMERGENCY ALERT"
    assert published[1].notification.title == "⚠️ Community Alert"

    nearby = service.get_notices()
    assert {n.id for n in nearby} == {p.notice.id for p in published}

    # Second call within the TTL is served from the cache.
    publisher.publish(latitude=40.0, longitude=-74.0)
    assert len(requests) == 1


def test_get_current_returns_none_on_error(monkeypatch, tmp_path):
    import noticeboard.ingestion.weather_client as weather_client

    def boom(url, **kwargs):
        raise httpx.ConnectError("down", request=httpx.Request("GET", url))

    monkeypatch.setattr(weather_client, "get_json", boom)
    client = WeatherClient(_settings_with_key(), FileCache(tmp_path))
    assert client.get_current(lat=40.0, lon=-74.0) is None
