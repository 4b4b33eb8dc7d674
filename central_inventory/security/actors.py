from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from central_inventory.auth import Principal, Role

# Identity comes from the upstream gateway; this service never authenticates.
ACTOR_ID_HEADER = 'x-actor-id'
ACTOR_NAME_HEADER = 'x-actor-name'
ACTOR_ROLE_HEADER = 'x-actor-role'
ACTOR_SERVICE_CENTER_HEADER = 'x-actor-service-center'

AUTH_EXEMPT_PATHS = {'/health', '/docs', '/openapi.json'}


def load_principal_from_headers(headers) -> Principal | None:
    actor_id = (headers.get(ACTOR_ID_HEADER) or '').strip()
    name = (headers.get(ACTOR_NAME_HEADER) or '').strip()
    role_raw = (headers.get(ACTOR_ROLE_HEADER) or '').strip().upper()
    if not actor_id or not name or not role_raw:
        return None
    try:
        role = Role(role_raw)
    except ValueError:
        return None
    service_center_id = (headers.get(ACTOR_SERVICE_CENTER_HEADER) or '').strip() or None
    return Principal(id=actor_id, name=name, role=role, service_center_id=service_center_id)


def install_actor_middleware(app: FastAPI) -> None:
    @app.middleware('http')
    async def actor_middleware(request: Request, call_next):
        request.state.principal = load_principal_from_headers(request.headers)
        if request.url.path not in AUTH_EXEMPT_PATHS and request.state.principal is None:
            return JSONResponse({'detail': 'Missing or invalid actor headers'}, status_code=401)
        return await call_next(request)
