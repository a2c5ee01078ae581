"""
Readiness endpoint for the external renderer setup.

Reports each setup check without raising, so operators can see exactly
which precondition is missing.
"""

from fastapi import APIRouter, Request

from .envelope import ok

router = APIRouter(prefix="/api", tags=["readiness"])


@router.get("/readiness")
def get_readiness(request: Request):
    """
    Run the renderer setup checks.

    Example Response:
        {
            "success": true,
            "data": {
                "ready": false,
                "checks": [
                    {"id": "repo_location", "status": "pass", "message": "..."},
                    {"id": "create_video_script", "status": "fail", "message": "..."}
                ]
            }
        }
    """
    verifier = request.app.state.setup_verifier
    results = verifier.run_checks()
    ready = bool(results) and all(result.passed for result in results)
    return ok({
        "ready": ready,
        "verified_at": verifier.verified_at.isoformat() if verifier.verified_at else None,
        "checks": [result.to_dict() for result in results],
    })
