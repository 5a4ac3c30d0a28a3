"""
version.py — Single source of truth for the application version and branding.

History:
  v1.0.0 — Manga page lettering: AI dialogue and placement suggestions via
            Gemini, manual mode fallback, ten bubble shapes with angled
            tails and thought-dot chains, undo/redo, PNG export at 3×.
  v1.1.0 — Drag the red tail dot to repoint a tail; arrow keys nudge the
            selected bubble; suggestions arriving for a page that was
            closed meanwhile are discarded; MANGA_* environment settings.
"""

__version__  = "1.1.0"
__app_name__ = "Manga Lettering Studio"
__org_name__ = "Manga Lettering Studio contributors"
__copyright__ = "© 2026 Manga Lettering Studio contributors"
