import sitebuilder.__main__ as entry


def test_run_starts_uvicorn_on_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(entry.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(entry.config, "HOST", "127.0.0.1")
    monkeypatch.setattr(entry.config, "PORT", 8123)

    entry.run()

    assert calls == [("sitebuilder.main:app", {"host": "127.0.0.1", "port": 8123})]
