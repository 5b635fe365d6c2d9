import json
from pathlib import Path

from pydantic import ValidationError

from vmstore.bootstrap.config.loader import get_configfile
from vmstore.bootstrap.config.settings import VmstoreConfig, StoreSettings, RepositorySettings
from vmstore.core.facade import ViewRepository
from vmstore.core.ports.serializer import Serializer
from vmstore.core.ports.store import KeyValueStore
from vmstore.core.repository.registry import CollectionRegistry
from vmstore.infra.json_serializer import JsonDateSerializer
from vmstore.infra.lmdb_store.aiobackend import LMDBStore
from vmstore.infra.msgpack_serializer import MsgPackSerializer
from vmstore.infra.redis_store import RedisStore


def build_store(settings: StoreSettings) -> KeyValueStore:
    if settings.backend == "lmdb":
        return LMDBStore(
            path=settings.lmdb.data_dir,
            map_size=settings.lmdb.map_size,
        )

    redis = settings.redis
    return RedisStore(
        host=redis.host,
        port=redis.port,
        db=redis.db,
        username=redis.username,
        password=redis.password,
        socket_path=redis.socket_path,
        ssl=redis.ssl,
    )


def build_serializer(settings: RepositorySettings) -> Serializer:
    if settings.serializer == "msgpack":
        return MsgPackSerializer()
    return JsonDateSerializer()


def build_repository(
    config: VmstoreConfig,
    registry: CollectionRegistry | None = None,
) -> ViewRepository:
    return ViewRepository(
        store=build_store(config.store),
        serializer=build_serializer(config.repository),
        registry=registry,
        scan_count=config.repository.scan_count,
    )


def get_config(path: str | Path | None = None) -> VmstoreConfig:
    try:
        file = get_configfile(str(path) if path is not None else None)
        return VmstoreConfig.from_file(file)
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))
