from typing import AsyncGenerator

import pytest
import pytest_asyncio
import yaml

from tests.fake.fake_store import FakeKeyValueStore

from vmstore.core.facade import ViewRepository
from vmstore.core.repository.scanner import KeyspaceScanner
from vmstore.infra.json_serializer import JsonDateSerializer
from vmstore.infra.lmdb_store.aiobackend import LMDBStore


@pytest.fixture
def serializer():
    return JsonDateSerializer()


@pytest.fixture
def store():
    return FakeKeyValueStore()


@pytest.fixture
def scanner(store):
    return KeyspaceScanner(store)


@pytest_asyncio.fixture
async def repository(store, serializer) -> AsyncGenerator[ViewRepository, None]:
    repo = ViewRepository(store, serializer)
    await repo.connect()
    try:
        yield repo
    finally:
        await repo.disconnect()


@pytest_asyncio.fixture
async def lmdb_store(tmp_path) -> AsyncGenerator[LMDBStore, None]:
    lmdb_store = LMDBStore(tmp_path / "lmdb", map_size=1 << 22)
    await lmdb_store.connect()
    try:
        yield lmdb_store
    finally:
        await lmdb_store.close()


@pytest.fixture
def config_file(tmp_path):
    file = tmp_path / "vmstore.yaml"

    data = {
        "store": {
            "backend": "lmdb",
            "lmdb": {
                "data_dir": str(tmp_path / "data"),
                "map_size": 1 << 22,
            },
        },
        "repository": {
            "prefix": "orders",
            "serializer": "msgpack",
            "scan_count": 50,
        },
    }

    file.write_text(yaml.dump(data))
    return file
