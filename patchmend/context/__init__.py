from .builder import build_regeneration_request, render_regeneration_prompt

__all__ = ["build_regeneration_request", "render_regeneration_prompt"]
