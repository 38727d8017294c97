"""Cascade controller and degradation ladder.

Sub-modules:
- ``config``            — content caps, protection statuses, confidence labels
- ``content_extractor`` — trafilatura-based text extraction with a tag-stripping fallback
- ``signals``           — buyer-intent and contact annotations
- ``direct_fetch``      — last-resort direct GET
- ``synthetic``         — placeholder records
- ``cascade``           — per-target fallback cascade
- ``orchestrator``      — batch entry point
"""
