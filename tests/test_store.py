"""Tests for the global store and application bootstrap."""

import pytest

from datamanager.main import init_datamanager
from datamanager.shared.core.event_bus import EventBus
from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.state.store import Store

from conftest import FakeHost, FakeNavigation, FakeTransport, FakeView, FakeViews


@pytest.fixture(autouse=True)
def reset_store():
    Store.reset()
    yield
    Store.reset()


def collaborators():
    return {
        "api": FakeTransport(),
        "host": FakeHost(),
        "views": FakeViews(FakeView()),
        "navigation": FakeNavigation(),
    }


def test_get_before_initialize_raises():
    with pytest.raises(RuntimeError):
        Store.get()


def test_initialize_once():
    store = Store.initialize(EventBus(), **collaborators())

    assert Store.get() is store
    assert store.app.bus is store.bus
    with pytest.raises(RuntimeError):
        Store.initialize(EventBus(), **collaborators())


def test_reset_destroys_app():
    store = Store.initialize(EventBus(), **collaborators())

    Store.reset()

    assert store.app.task_store is None
    with pytest.raises(RuntimeError):
        Store.get()


@pytest.mark.asyncio
async def test_shutdown_closes_transport():
    parts = collaborators()
    Store.initialize(EventBus(), **parts)

    await Store.shutdown()

    assert not Store.is_initialized()
    assert parts["api"].calls_to("aclose") == [("aclose", None, None)]

    await Store.shutdown()


@pytest.mark.asyncio
async def test_init_datamanager_loads_project(tmp_path, monkeypatch):
    monkeypatch.setenv("DM_POLLING_ENABLED", "false")
    monkeypatch.setenv("DM_PREFERENCES_PATH", str(tmp_path / "preferences.yaml"))
    parts = collaborators()
    parts["api"].responses["project"] = ApiResult(data={"id": 1, "task_count": 4})

    store = await init_datamanager(
        parts["host"],
        parts["views"],
        parts["navigation"],
        api=parts["api"],
        project_root=tmp_path,
        setup_logging=False,
        interfaces={"toolbar": True},
    )

    assert Store.get() is store
    assert store.app.project["task_count"] == 4
    assert store.app.loading is False
    assert store.app.interfaces == {"toolbar": True}
    assert store.app.config.polling.enabled is False
    assert store.app.preferences.path == tmp_path / "preferences.yaml"
