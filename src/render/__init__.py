"""Render module for calculator output display."""

from render.renderers import (
    BaseRenderer,
    JurisdictionRenderer,
    GloBEStepsRenderer,
    SafeHarbourRenderer,
    DeadlineRenderer,
    GIRRenderer,
    DFERenderer,
    AuditChecklistRenderer,
    JsonRenderer,
    RENDERER_REGISTRY,
    DEFAULT_RENDERERS,
    renderer_for,
)

__all__ = [
    'BaseRenderer',
    'JurisdictionRenderer',
    'GloBEStepsRenderer',
    'SafeHarbourRenderer',
    'DeadlineRenderer',
    'GIRRenderer',
    'DFERenderer',
    'AuditChecklistRenderer',
    'JsonRenderer',
    'RENDERER_REGISTRY',
    'DEFAULT_RENDERERS',
    'renderer_for',
]
