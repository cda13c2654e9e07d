from fastapi import FastAPI, Depends, HTTPException, Header
from typing import Optional
from .config import settings
from .notifier import EventNotifier

app = FastAPI(title="Stump Media Server Events")
notifier: Optional[EventNotifier] = None

def get_token(x_token: Optional[str] = Header(None, alias="X-Token")):
    if settings.HTTP_SERVER_TOKEN and x_token != settings.HTTP_SERVER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token")

@app.get("/healthz")
def healthz():
    if not notifier:
        return {"status": "starting"}

    health = notifier.health()
    # Degraded and failed are reported, not raised, so the container is not restarted mid-fallback
    if health["status"] in ("degraded", "failed"):
        return {"status": health["status"], "circuit": health.get("circuit")}
    if not health["active"]:
        return {"status": "stopped"}
    return {"status": "ok"}

@app.get("/status", dependencies=[Depends(get_token)])
def status():
    if not notifier:
        return {"status": "not_ready"}

    return {
        "notifier": notifier.health(),
        "config": {
            "mode": settings.EVENTS_MODE,
            "poll_interval": settings.POLL_INTERVAL_SECONDS,
        }
    }
