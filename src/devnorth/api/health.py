"""Health check endpoint.

Learn: Liveness only: answers as long as the process serves requests.
It does not touch the database, so it stays green during a DB outage
and load balancers don't pull every instance at once.
"""

from fastapi import APIRouter

from devnorth import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Report server status and version."""
    return {"status": "ok", "server": "ok", "version": __version__}
