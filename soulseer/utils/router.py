from fastapi import APIRouter


def get_router(prefix: str, tag: str = None):
    """
    Shared API router factory

    Args:
        prefix (str): path below /api (e.g. "readers", "admin/finance")
        tag (str): OpenAPI tag, defaults to the prefix

    Returns:
        APIRouter: router mounted at /api/{prefix}
    """
    base_prefix = "/api"

    # avoid duplicated slashes and casing issues
    prefix = prefix.strip("/").lower()

    full_prefix = f"{base_prefix}/{prefix}" if prefix else base_prefix

    router = APIRouter(prefix=full_prefix, tags=[tag or prefix or "api"])

    return router
