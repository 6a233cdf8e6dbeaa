"""
Storage tools (storage module): IndexedDB, Cache Storage, service workers.

IndexedDB and Cache Storage are read through CDP for the page's security
origin. Service workers go through `navigator.serviceWorker` in the page.
"""

from __future__ import annotations

import logging
from typing import Any

from ..server.types import ToolContext, ToolResult
from .base import require_arg, tool

logger = logging.getLogger("mcp.browser.tools.storage")

INDEXEDDB_PAGE_SIZE = 100
CACHE_PAGE_SIZE = 50

DEFINITIONS: list[dict[str, Any]] = [
    tool(
        "browser_storage_get_indexeddb",
        "Inspect IndexedDB databases and their data (see browser_docs)",
        {
            "databaseName": {"type": "string", "description": "Specific database to inspect (optional)"},
            "objectStoreName": {
                "type": "string",
                "description": "Specific object store to query (optional, requires databaseName)",
            },
        },
    ),
    tool(
        "browser_storage_get_cache_storage",
        "List Cache Storage API caches and their entries (see browser_docs)",
        {"cacheName": {"type": "string", "description": "Specific cache to inspect (optional)"}},
    ),
    tool(
        "browser_storage_delete_cache",
        "Delete a specific cache from Cache Storage (see browser_docs)",
        {"cacheName": {"type": "string", "description": "Cache name to delete"}},
        ["cacheName"],
    ),
    tool("browser_storage_get_service_workers", "Get service worker registrations and their state (see browser_docs)"),
    tool(
        "browser_storage_unregister_service_worker",
        "Unregister a service worker (see browser_docs)",
        {"scopeURL": {"type": "string", "description": "Scope URL of service worker to unregister"}},
        ["scopeURL"],
    ),
]

_ORIGIN_JS = "() => window.location.origin"

_SERVICE_WORKERS_JS = """async () => {
    if (!('serviceWorker' in navigator)) return { supported: false };
    const describe = w => w ? { scriptURL: w.scriptURL, state: w.state } : null;
    const registrations = await navigator.serviceWorker.getRegistrations();
    return {
        supported: true,
        registrations: registrations.map(reg => ({
            scope: reg.scope,
            active: describe(reg.active),
            installing: describe(reg.installing),
            waiting: describe(reg.waiting)
        }))
    };
}"""

_UNREGISTER_JS = """async (scopeURL) => {
    if (!('serviceWorker' in navigator)) return { success: false, error: 'Service Workers not supported' };
    const registrations = await navigator.serviceWorker.getRegistrations();
    const registration = registrations.find(reg => reg.scope === scopeURL);
    if (!registration) return { success: false, error: 'Service worker not found for scope: ' + scopeURL };
    return { success: await registration.unregister() };
}"""


def _origin_and_session(ctx: ToolContext) -> tuple[str, Any]:
    origin = ctx.page().evaluate(_ORIGIN_JS)
    return origin, ctx.cdp.get_session()


def _store_structure(db: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": db.get("name"),
        "version": db.get("version"),
        "objectStores": [
            {
                "name": store.get("name"),
                "keyPath": store.get("keyPath"),
                "autoIncrement": store.get("autoIncrement"),
                "indexes": [
                    {k: idx.get(k) for k in ("name", "keyPath", "unique", "multiEntry")}
                    for idx in store.get("indexes", [])
                ],
            }
            for store in db.get("objectStores", [])
        ],
    }


def get_indexeddb(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    origin, session = _origin_and_session(ctx)
    names = session.send("IndexedDB.requestDatabaseNames", {"securityOrigin": origin}).get("databaseNames", [])
    if not names:
        return ToolResult.text("No IndexedDB databases found for this origin.\n\nThe page may not be using IndexedDB.")

    database = args.get("databaseName")
    if not database:
        return ToolResult.json({"origin": origin, "databases": names}, title="IndexedDB Databases:")

    store = args.get("objectStoreName")
    if not store:
        info = session.send("IndexedDB.requestDatabase", {"securityOrigin": origin, "databaseName": database})
        return ToolResult.json(_store_structure(info.get("databaseWithObjectStores", {})), title="IndexedDB Database Structure:")

    response = session.send(
        "IndexedDB.requestData",
        {
            "securityOrigin": origin,
            "databaseName": database,
            "objectStoreName": store,
            "indexName": "",
            "skipCount": 0,
            "pageSize": INDEXEDDB_PAGE_SIZE,
        },
    )
    entries = response.get("objectStoreDataEntries", [])
    data = {
        "objectStore": store,
        "entries": len(entries),
        "hasMore": bool(response.get("hasMore")),
        "data": [{k: e.get(k) for k in ("key", "primaryKey", "value")} for e in entries],
    }
    return ToolResult.json(data, title=f"IndexedDB Data (limited to {INDEXEDDB_PAGE_SIZE} entries):")


def _cache_names(session: Any, origin: str) -> list[dict[str, Any]]:
    return session.send("CacheStorage.requestCacheNames", {"securityOrigin": origin}).get("caches", [])


def _cache_not_found(name: str, caches: list[dict[str, Any]]) -> ToolResult:
    available = "\n".join(f"  - {c['cacheName']}" for c in caches) or "  (none)"
    return ToolResult.text(f'Cache "{name}" not found.\n\nAvailable caches:\n{available}')


def get_cache_storage(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    origin, session = _origin_and_session(ctx)
    caches = _cache_names(session, origin)
    if not caches:
        return ToolResult.text("No Cache Storage caches found for this origin.\n\nThe page may not be using Cache Storage API.")

    name = args.get("cacheName")
    if not name:
        return ToolResult.json({"origin": origin, "caches": [c["cacheName"] for c in caches]}, title="Cache Storage Caches:")

    cache = next((c for c in caches if c["cacheName"] == name), None)
    if cache is None:
        return _cache_not_found(name, caches)

    response = session.send(
        "CacheStorage.requestEntries", {"cacheId": cache["cacheId"], "skipCount": 0, "pageSize": CACHE_PAGE_SIZE}
    )
    fields = ("requestURL", "requestMethod", "responseStatus", "responseStatusText", "responseType")
    entries = {
        "cacheName": name,
        "entryCount": response.get("returnCount"),
        "entries": [{k: e.get(k) for k in fields} for e in response.get("cacheDataEntries", [])],
    }
    return ToolResult.json(entries, title=f"Cache Storage Entries (limited to {CACHE_PAGE_SIZE}):")


def delete_cache(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    name = require_arg(args, "cacheName", tool="browser_storage_delete_cache")
    origin, session = _origin_and_session(ctx)
    caches = _cache_names(session, origin)
    cache = next((c for c in caches if c["cacheName"] == name), None)
    if cache is None:
        return _cache_not_found(name, caches)
    session.send("CacheStorage.deleteCache", {"cacheId": cache["cacheId"]})
    logger.info("Deleted cache: %s", name)
    return ToolResult.text(f"Cache deleted successfully: {name}")


def get_service_workers(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    info = ctx.page().evaluate(_SERVICE_WORKERS_JS)
    if not info.get("supported"):
        return ToolResult.text("Service Workers not supported in this browser/context.")
    registrations = info.get("registrations") or []
    if not registrations:
        return ToolResult.text("No service workers found.\n\nThe page may not have registered any service workers.", data=[])
    return ToolResult.json(registrations, title="Service Workers:")


def unregister_service_worker(ctx: ToolContext, args: dict[str, Any]) -> ToolResult:
    scope = require_arg(args, "scopeURL", tool="browser_storage_unregister_service_worker")
    result = ctx.page().evaluate(_UNREGISTER_JS, scope)
    if not result.get("success"):
        return ToolResult.text(result.get("error") or f"Failed to unregister service worker: {scope}")
    logger.info("Unregistered service worker: %s", scope)
    return ToolResult.text(f"Service worker unregistered: {scope}")


HANDLERS = {
    "browser_storage_get_indexeddb": get_indexeddb,
    "browser_storage_get_cache_storage": get_cache_storage,
    "browser_storage_delete_cache": delete_cache,
    "browser_storage_get_service_workers": get_service_workers,
    "browser_storage_unregister_service_worker": unregister_service_worker,
}
