"""
Health Check Endpoints.

Basic system status endpoints (health, version) used for monitoring and
deployment verification.
"""

from importlib.metadata import PackageNotFoundError, version as package_version

from fastapi import APIRouter

router = APIRouter()


def _version() -> str:
    try:
        return package_version("transmute-ai")
    except PackageNotFoundError:
        return "0.0.0"


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the API server.",
)
async def health_check():
    return {"status": "ok"}


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve version information for the API server.",
)
async def version():
    """
    Get API version.

    Returns the installed package version and the API schema version.
    """
    return {"version": _version(), "schema_version": "v1"}
