#!/usr/bin/env python3
"""
Generate the OpenAPI 3.0.3 JSON specification of the identity sync admin API.

- Removes documentation endpoints that are not part of the API
- Documents the X-View-ID header and the optional gateway API key
- Adds server entries per environment

Usage:
    python scripts/generate_openapi.py
    python scripts/generate_openapi.py --output openapi/openapi.json --pretty
    python scripts/generate_openapi.py --env prod
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any
from typing import Dict
from typing import List

# Add src to path for imports
script_dir = Path(__file__).parent.absolute()
project_root = script_dir.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from idsync_api.main import create_app  # noqa: E402
from idsync_api.settings import Settings  # noqa: E402

HTTP_METHODS = ("get", "post", "put", "patch", "delete")

# Placeholder gateway used when no DIRECTORY_URL is configured; nothing is called while generating
PLACEHOLDER_DIRECTORY_URL = "http://localhost:8080"


def get_environment_servers(env: str = "dev") -> List[Dict[str, str]]:
    """Get server configurations for different environments."""
    servers = {
        "dev": [
            {"url": "http://localhost:8000", "description": "Local development server"},
        ],
        "uat": [
            {"url": "https://idsync-uat.example.internal", "description": "UAT environment"},
        ],
        "prod": [
            {"url": "https://idsync.example.internal", "description": "Production environment"},
        ],
    }
    return servers.get(env, servers["dev"])


def filter_internal_endpoints(openapi_spec: Dict[str, Any]) -> Dict[str, Any]:
    """Remove documentation endpoints that are not part of the API."""
    for path in ("/docs", "/redoc", "/openapi.json"):
        openapi_spec.get("paths", {}).pop(path, None)
    return openapi_spec


def add_security_schemes(openapi_spec: Dict[str, Any]) -> Dict[str, Any]:
    """Document the view header and the gateway API key on every admin operation."""
    openapi_spec.setdefault("components", {}).setdefault("securitySchemes", {}).update(
        {
            "apiKey": {
                "type": "apiKey",
                "name": "X-API-Key",
                "in": "header",
                "description": "API key checked by the fronting gateway",
            },
        }
    )

    for path, methods in openapi_spec.get("paths", {}).items():
        for method, operation in methods.items():
            if method.lower() not in HTTP_METHODS:
                continue
            # Health endpoints stay open for probes
            operation["security"] = [] if path.startswith("/api/health") else [{"apiKey": []}]

    return openapi_spec


def enhance_api_metadata(openapi_spec: Dict[str, Any], env: str = "dev") -> Dict[str, Any]:
    """Add servers and tag descriptions."""
    openapi_spec["servers"] = get_environment_servers(env)
    openapi_spec["tags"] = [
        {"name": "Health", "description": "Health check and monitoring endpoints"},
        {"name": "Users", "description": "User detail, directory re-sync and session tokens"},
        {"name": "LDAP", "description": "Directory connection state, sync status and attribute mapping"},
    ]
    return openapi_spec


def _remove_null_values(obj: Any) -> Any:
    """Recursively remove null values from the OpenAPI spec."""
    if isinstance(obj, dict):
        return {k: _remove_null_values(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [_remove_null_values(item) for item in obj if item is not None]
    return obj


def generate_openapi_spec(env: str = "dev") -> Dict[str, Any]:
    """Generate the complete OpenAPI specification."""
    print(f"Generating OpenAPI spec for environment: {env}")

    try:
        settings = Settings()
    except Exception:
        print(f"DIRECTORY_URL not configured, using placeholder {PLACEHOLDER_DIRECTORY_URL}")
        settings = Settings(directory_url=PLACEHOLDER_DIRECTORY_URL)

    app = create_app(settings)
    openapi_spec = app.openapi()

    openapi_spec = filter_internal_endpoints(openapi_spec)
    openapi_spec = enhance_api_metadata(openapi_spec, env)
    openapi_spec = add_security_schemes(openapi_spec)
    return _remove_null_values(openapi_spec)


def main() -> None:
    """Main script entry point."""
    parser = argparse.ArgumentParser(description="Generate OpenAPI JSON for the identity sync admin API")
    parser.add_argument(
        "--output",
        "-o",
        default="openapi/openapi.json",
        help="Output file path (default: openapi/openapi.json)",
    )
    parser.add_argument(
        "--env",
        "-e",
        choices=["dev", "uat", "prod"],
        default="dev",
        help="Environment to generate spec for (default: dev)",
    )
    parser.add_argument("--pretty", "-p", action="store_true", help="Pretty print JSON output")
    args = parser.parse_args()

    try:
        openapi_spec = generate_openapi_spec(args.env)

        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(openapi_spec, f, indent=2 if args.pretty else None, ensure_ascii=False)

        paths = openapi_spec.get("paths", {})
        method_count = sum(len([m for m in methods if m.lower() in HTTP_METHODS]) for methods in paths.values())
        print(f"OpenAPI spec written to: {output_path.absolute()}")
        print(f"Endpoints: {len(paths)}, operations: {method_count}")

    except Exception as e:
        print(f"Error generating OpenAPI spec: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
