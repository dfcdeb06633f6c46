# File: core/__init__.py
# Purpose: Package marker for cross-cutting helpers (structured event logging).
