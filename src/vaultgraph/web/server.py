from contextlib import asynccontextmanager
from typing import Any

from ..graph.models import GraphNode, GraphOptions
from ..service import GraphService


def create_app(*, service: GraphService | None = None, vault_id: str | None = None):
    # Lazy import so core CLI works without web deps.
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    svc = service or GraphService(vault_id=vault_id)

    @asynccontextmanager
    async def lifespan(_app):
        yield
        svc.close()

    app = FastAPI(title="vaultgraph", version="0.1.0", lifespan=lifespan)
    app.state.graph_service = svc

    def _bad_request(e: Exception) -> JSONResponse:
        return JSONResponse({"ok": False, "error": str(e)}, status_code=400)

    def _node(n: GraphNode | None) -> dict[str, Any] | None:
        return n.to_dict() if n is not None else None

    def _nodes(ns: list[GraphNode]) -> list[dict[str, Any]]:
        return [n.to_dict() for n in ns]

    def _options(include_tags: bool, include_orphans: bool, max_nodes: int | None) -> GraphOptions:
        return GraphOptions(include_tags=include_tags, include_orphans=include_orphans, max_nodes=max_nodes)

    @app.get("/api/graph")
    def global_graph(include_tags: bool = True, include_orphans: bool = True, max_nodes: int | None = None):
        try:
            opts = _options(include_tags, include_orphans, max_nodes)
        except ValueError as e:
            return _bad_request(e)
        return {"ok": True, "graph": svc.get_global_graph(opts).to_dict()}

    @app.get("/api/graph/local")
    def local_graph(path: str, depth: int = 1, include_tags: bool = True):
        try:
            graph = svc.get_local_graph(path, depth=depth, options=_options(include_tags, True, None))
        except ValueError as e:
            return _bad_request(e)
        return {"ok": True, "graph": graph.to_dict()}

    @app.get("/api/graph/tag")
    def tag_graph(tag: str):
        return {"ok": True, "graph": svc.filter_by_tag(tag).to_dict()}

    @app.get("/api/graph/stats")
    def stats():
        return {"ok": True, "stats": svc.get_graph_stats().to_dict()}

    @app.get("/api/graph/node")
    def find_node(q: str):
        return {"ok": True, "node": _node(svc.find_node(q))}

    @app.get("/api/graph/neighbors")
    def neighbors(node_id: str, depth: int = 1):
        try:
            ns = svc.get_node_neighbors(node_id, depth)
        except ValueError as e:
            return _bad_request(e)
        return {"ok": True, "nodes": _nodes(ns)}

    @app.get("/api/graph/path")
    def path(from_id: str, to_id: str):
        return {"ok": True, "nodes": _nodes(svc.get_path_between_nodes(from_id, to_id))}

    @app.get("/api/graph/hubs")
    def hubs(limit: int = 10):
        try:
            ns = svc.get_most_connected_nodes(limit)
        except ValueError as e:
            return _bad_request(e)
        return {"ok": True, "nodes": _nodes(ns)}

    @app.get("/api/graph/orphans")
    def orphans():
        return {"ok": True, "nodes": _nodes(svc.get_orphaned_nodes())}

    @app.get("/api/graph/tags")
    def tags():
        return {"ok": True, "nodes": _nodes(svc.get_all_tag_nodes())}

    @app.get("/api/graph/files")
    def files():
        return {"ok": True, "nodes": _nodes(svc.get_all_file_nodes())}

    @app.get("/api/graph/connectivity")
    def connectivity(node_id: str):
        return {"ok": True, "connectivity": svc.analyze_node_connectivity(node_id).to_dict()}

    @app.post("/api/graph/refresh")
    def refresh():
        svc.refresh_cache()
        return {"ok": True}

    @app.get("/api/cache/stats")
    def cache_stats():
        return {"ok": True, "stats": svc.get_cache_stats()}

    @app.get("/api/vault")
    def current_vault():
        return {"ok": True, "vault": svc.current_vault()}

    @app.post("/api/vault/switch")
    def switch_vault(payload: dict[str, Any]):
        vault_id = str(payload.get("vault_id") or "").strip()
        if not vault_id:
            return JSONResponse({"ok": False, "error": "vault_id is required"}, status_code=400)
        try:
            svc.switch_vault(vault_id)
        except ValueError as e:
            return _bad_request(e)
        return {"ok": True, "vault": svc.current_vault()}

    return app
