"""FastAPI dependencies for request handling.

Everything is resolved from app.state, which the application lifespan (or a
test fixture) populates. Route handlers never touch module-level globals.
"""

from fastapi import Request

from imagegen.services.image_generation.job_handler import ImageJobHandler


def get_job_handler(request: Request) -> ImageJobHandler:
    """Get the image job handler from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(handler: ImageJobHandler = Depends(get_job_handler)):
        ...     return await handler.get_record(record_id)
    """
    return request.app.state.job_handler
