"""Signal grid updates from the world layer, and current output levels."""

from fastapi import APIRouter, Depends, HTTPException

from backend.deps import get_hub
from storyteller.hub import StorytellerHub

from .models import SignalUpdates

router = APIRouter()


@router.post("/signals")
async def update_signals(body: SignalUpdates, hub: StorytellerHub = Depends(get_hub)):
    """Set signal strengths on the grid. Edges are picked up on the next scan."""
    setter = getattr(hub.grid, "set_signal", None)
    if setter is None:
        raise HTTPException(409, "Signal grid is read-only")
    for update in body.updates:
        setter(update.position, update.strength)
    return {"updated": len(body.updates)}


@router.get("/signals/output")
async def output_levels(hub: StorytellerHub = Depends(get_hub)):
    """Latest emitted strength per agent."""
    return {"tick": hub.tick_count, "levels": dict(getattr(hub.output, "levels", {}))}
