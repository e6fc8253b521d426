import os
from pathlib import Path
from textwrap import dedent
from typing import Any
from typing import Dict
from typing import Optional

import pydantic
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.routing import APIRoute
from loguru import logger

from idsync_api.directory.client import DirectorySyncClient
from idsync_api.errors import handle_broad_exceptions
from idsync_api.errors import handle_identity_sync_errors
from idsync_api.errors import handle_pydantic_validation_errors
from idsync_api.exceptions import IdentitySyncError
from idsync_api.identity.repository_user import InMemoryUserStore
from idsync_api.identity.repository_user import UserRepository
from idsync_api.identity.repository_user import UserStore
from idsync_api.monitoring.logger import configure_logger
from idsync_api.monitoring.request_context import RequestContextMiddleware
from idsync_api.orchestrator.registry import ViewRegistry
from idsync_api.orchestrator.user_detail import UserAdminOrchestrator
from idsync_api.routes.routes_health import ROUTER_HEALTH
from idsync_api.routes.routes_ldap import ROUTER_LDAP
from idsync_api.routes.routes_users import ROUTER_USERS
from idsync_api.sessions.repository_session import SessionRepository
from idsync_api.sessions.store import InMemorySessionStore
from idsync_api.sessions.store import SessionStore
from idsync_api.settings import Settings


def _detect_environment() -> str:
    """Detect whether configuration comes from a .env file or the process environment."""
    if Path(".env").exists():
        return "local-env-file"
    return "env-vars"


def create_app(
    settings: Optional[Settings] = None,
    directory_client: Optional[DirectorySyncClient] = None,
    session_store: Optional[SessionStore] = None,
    user_store: Optional[UserStore] = None,
) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded from environment variables via pydantic-settings.
    Collaborators can be injected (tests, embedding); otherwise they are built from settings:
    - PostgreSQL stores when DOMAIN_DB_CONNECTION_STRING is set, in-memory stores otherwise
    - one shared directory gateway client carrying the enterprise build flag
    """
    settings = settings or Settings()

    configure_logger(log_level=settings.log_level)

    logger.info(
        "Configuration loaded successfully",
        source=_detect_environment(),
        directory_url=settings.directory_url,
        directory_token_set=bool(settings.directory_api_token),
        enterprise_build=settings.enterprise_build,
        postgres_storage=bool(settings.domain_db_connection_string),
    )

    app = FastAPI(
        title="Identity Sync Admin API",
        version="v1",
        description=dedent(
            """
        Administration of locally stored users against an LDAP directory.

        | Area | Notes |
        | --- | --- |
        | Users | user detail, directory re-sync |
        | Sessions | list and revoke session tokens |
        | LDAP | connection state, sync status, attribute mapping |

        Every admin endpoint reads and updates the state of one console view, selected
        with the `X-View-ID` header (`default` when omitted).
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,  # Hide schemas section
            "defaultModelExpandDepth": 1,  # Keep models collapsed if shown
        },
    )
    app.state.settings = settings

    if directory_client is None:
        directory_client = DirectorySyncClient(
            base_url=settings.directory_url,
            api_token=settings.directory_api_token,
            enterprise=settings.enterprise_build,
            timeout=settings.directory_timeout_seconds,
        )
    app.state.directory_client = directory_client

    if settings.domain_db_connection_string and (session_store is None or user_store is None):
        from idsync_api.db.pool import DomainDBPool

        domain_db_pool = DomainDBPool(settings.domain_db_connection_string)
        app.state.domain_db_pool = domain_db_pool
        session_store = session_store or SessionRepository(domain_db_pool)
        user_store = user_store or UserRepository(domain_db_pool)
        logger.info("PostgreSQL storage enabled for users and sessions")
    else:
        session_store = session_store or InMemorySessionStore()
        user_store = user_store or InMemoryUserStore()
        logger.info("In-memory storage in use for users and sessions")

    app.state.session_store = session_store
    app.state.user_store = user_store

    def build_orchestrator(view_id: str) -> UserAdminOrchestrator:
        return UserAdminOrchestrator(
            directory_client=directory_client,
            session_store=session_store,
            user_store=user_store,
            view_id=view_id,
        )

    app.state.view_registry = ViewRegistry(build_orchestrator)

    @app.on_event("startup")
    async def startup_storage():
        """Open the database pool and create the schema if PostgreSQL storage is configured."""
        if hasattr(app.state, "domain_db_pool"):
            await app.state.domain_db_pool.initialize()
            logger.success("Domain database initialized")

    @app.on_event("shutdown")
    async def shutdown_clients():
        """Close the directory client and database connections."""
        await app.state.directory_client.aclose()
        if hasattr(app.state, "domain_db_pool"):
            await app.state.domain_db_pool.close()
            logger.info("Domain database closed")

    # Add request context middleware for tracking who/where requests come from
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_LDAP, prefix="/api")
    app.include_router(ROUTER_USERS, prefix="/api")

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=IdentitySyncError,
        handler=handle_identity_sync_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    # Override OpenAPI schema generation to produce 3.0.3 compatible spec
    app.openapi = lambda: custom_openapi_schema(app)

    logger.info("Starting Identity Sync Admin API", enterprise_build=settings.enterprise_build)
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


def _convert_schema_to_3_0(schema: Dict[str, Any]) -> None:
    """Recursively rewrite a JSON schema from OpenAPI 3.1.0 to 3.0.3 in place."""
    if not isinstance(schema, dict):
        return

    # anyOf: [{type: "string"}, {type: "null"}] -> type: "string", nullable: true
    any_of = schema.get("anyOf")
    if isinstance(any_of, list):
        non_null = [s for s in any_of if not (isinstance(s, dict) and s.get("type") == "null")]
        if len(non_null) < len(any_of) and len(non_null) == 1:
            del schema["anyOf"]
            schema.update(non_null[0])
            schema["nullable"] = True
        else:
            schema["anyOf"] = non_null
            if len(non_null) < len(any_of):
                schema["nullable"] = True
            for sub_schema in non_null:
                _convert_schema_to_3_0(sub_schema)

    # type: ["string", "null"] -> type: "string", nullable: true
    if isinstance(schema.get("type"), list) and "null" in schema["type"]:
        types = [t for t in schema["type"] if t != "null"]
        schema["nullable"] = True
        if len(types) == 1:
            schema["type"] = types[0]
        else:
            del schema["type"]
            schema["anyOf"] = [{"type": t} for t in types]

    # 3.0.x only knows the singular example
    if "examples" in schema:
        examples = schema.pop("examples")
        if isinstance(examples, list) and examples:
            schema["example"] = examples[0]

    for prop_schema in (schema.get("properties") or {}).values():
        _convert_schema_to_3_0(prop_schema)
    for key in ("oneOf", "allOf"):
        for sub_schema in schema.get(key) or []:
            _convert_schema_to_3_0(sub_schema)
    for key in ("items", "additionalProperties"):
        if isinstance(schema.get(key), dict):
            _convert_schema_to_3_0(schema[key])


def _operation_schemas(operation: Dict[str, Any]):
    """Yield every schema embedded in a path operation: request body, responses, parameters."""
    for media_type in operation.get("requestBody", {}).get("content", {}).values():
        if "schema" in media_type:
            yield media_type["schema"]
    for response in operation.get("responses", {}).values():
        if isinstance(response, dict):
            for media_type in response.get("content", {}).values():
                if "schema" in media_type:
                    yield media_type["schema"]
    for param in operation.get("parameters", []):
        if "schema" in param:
            yield param["schema"]


def custom_openapi_schema(app: FastAPI) -> Dict[str, Any]:
    """
    Generate an OpenAPI 3.0.3 compatible schema.

    API gateways commonly only accept OpenAPI 3.0.x, while FastAPI emits 3.1.0.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema["openapi"] = "3.0.3"
    openapi_schema.get("info", {}).pop("summary", None)

    for schema in openapi_schema.get("components", {}).get("schemas", {}).values():
        _convert_schema_to_3_0(schema)

    for path_item in openapi_schema.get("paths", {}).values():
        for operation in path_item.values():
            if isinstance(operation, dict):
                for schema in _operation_schemas(operation):
                    _convert_schema_to_3_0(schema)

    app.openapi_schema = openapi_schema
    return app.openapi_schema


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
