from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "service": request.app.title,
        "request_id": getattr(request.state, "request_id", None),
    }
