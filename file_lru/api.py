from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException

from file_lru.errors import InsufficientCapacity, LRUError
from file_lru.manager import FileCacheManager


def _records(evicted):
    return [{"key": info.key, "path": str(info.path), "file_size": info.file_size} for info in evicted]


def create_app(manager: FileCacheManager) -> FastAPI:
    """HTTP sidecar exposing a file cache to the processes sharing its directory."""
    app = FastAPI()
    app.state.manager = manager

    @app.get("/health")
    def health_check():
        """Standard Liveness Probe."""
        return {"status": "ok"}

    @app.get("/usage")
    def usage():
        used, capacity, entries = manager.usage()
        return {"used_bytes": used, "capacity_bytes": capacity, "entries": entries}

    @app.get("/files/{key}")
    def get_file(key: str):
        """Returns the local path of a cached file and marks it as recently used."""
        local_path = manager.open_file_path(key)
        if local_path is None:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=f"{key} not cached.")
        return {"key": key, "local_path": str(local_path)}

    @app.put("/files/{key}")
    async def put_file(key: str, request: Request):
        """
        Stores the request body under `key`. Older files are evicted when the
        cache is full; the response lists them so callers can reconcile.
        """
        data = await request.body()
        try:
            evicted = manager.place_file(key, data)
        except InsufficientCapacity as e:
            raise HTTPException(
                status_code=HTTPStatus.INSUFFICIENT_STORAGE,
                detail={"message": str(e), "evicted": _records(e.evicted)},
            )
        except LRUError as e:
            raise HTTPException(
                status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                detail={"message": f"Failed to place file: {e}", "evicted": _records(e.evicted)},
            )
        return {"status": "success", "key": key, "size": len(data), "evicted": _records(evicted)}

    @app.delete("/files/{key}")
    def delete_file(key: str):
        info = manager.discard(key)
        if info is None:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=f"{key} not cached.")
        return {"status": "success", "key": key, "file_size": info.file_size}

    @app.get("/lru")
    def least_recently_used():
        pair = manager.cache.least_recently_used_pair()
        if pair is None:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Cache is empty.")
        return {"key": pair[0], "path": str(pair[1])}

    @app.get("/mru")
    def most_recently_used():
        pair = manager.cache.most_recently_used_pair()
        if pair is None:
            raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Cache is empty.")
        return {"key": pair[0], "path": str(pair[1])}

    return app
