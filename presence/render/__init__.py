"""pygame render layers: particles, weather, face, HUD and the compositor."""

from presence.render.pipeline import FrameInputs, RenderPipeline

__all__ = [
    "FrameInputs",
    "RenderPipeline",
]
