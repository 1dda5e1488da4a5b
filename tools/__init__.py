# =============================================================================
# tools/__init__.py
# =============================================================================
# FastMCP tool wrappers.
#
# ARCHITECTURAL ROLE:
#   tools/ is the translation layer between MCP clients and core/.  Each
#   tool:
#     1. Logs the call (secrets redacted)
#     2. Calls into core/
#     3. Converts dataclasses to dicts for JSON
#     4. Catches upstream failures and returns them as error payloads
#
#   Tools hold no state between calls.
# =============================================================================
