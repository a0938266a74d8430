from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    rid = getattr(request.state, "request_id", None)
    return {"status": "ok", "service": request.app.title, "request_id": rid}
