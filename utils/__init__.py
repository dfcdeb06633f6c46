"""
Lightweight package marker for internal utils.

Ensures `from utils import ...` imports resolve when the CLI is run from an
editable install or from pytest.
"""
