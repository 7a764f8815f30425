# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env`. This file should contain only safe overrides.
"""

# Example: always open the same account
# ACCOUNT = "me"

# Example: delete past tasks instead of hiding them
# RETENTION_POLICY = "purge"

# Example: run only the background recurring sync (no REPL)
# CONSOLE_ENABLED = False
# SYNC_ENABLED = True
