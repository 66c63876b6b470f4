import aiohttp
import pytest

from services.internal.workspace_service import WorkspaceService


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.payload = payload

    async def json(self):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


def fake_session(status=200, payload=None, error=None):
    class FakeSession:
        requested = []

        async def __aenter__(self):
            return self

        async def __aexit__(self, *args):
            return False

        def get(self, url):
            FakeSession.requested.append(url)
            if error is not None:
                raise error
            return FakeResponse(status, payload)

    return FakeSession


@pytest.fixture
def service(log_util):
    return WorkspaceService(log_util=log_util, workspace_service_url="http://workspace.local/workspace/data/fetch/")


@pytest.mark.asyncio
async def test_workspace_info_is_returned(service, monkeypatch):
    session = fake_session(payload={"id": 7, "name": "Acme", "phone_id": "1122", "access_token": "t"})
    monkeypatch.setattr(aiohttp, "ClientSession", session)

    workspace = await service.get_workspace_info(7)

    assert workspace.phone_id == "1122"
    assert session.requested == ["http://workspace.local/workspace/data/fetch/7"]


@pytest.mark.asyncio
async def test_non_200_is_none(service, log_util, monkeypatch):
    monkeypatch.setattr(aiohttp, "ClientSession", fake_session(status=404, payload={}))

    assert await service.get_workspace_info(7) is None
    log_util.warning.assert_called_once()


@pytest.mark.asyncio
async def test_incomplete_workspace_data_is_none(service, log_util, monkeypatch):
    monkeypatch.setattr(aiohttp, "ClientSession", fake_session(payload={"id": 7, "name": "Acme"}))

    assert await service.get_workspace_info(7) is None
    log_util.error.assert_called_once()


@pytest.mark.asyncio
async def test_connection_error_is_none(service, log_util, monkeypatch):
    monkeypatch.setattr(aiohttp, "ClientSession", fake_session(error=aiohttp.ClientConnectionError("refused")))

    assert await service.get_workspace_info(7) is None
    log_util.error.assert_called_once()
