from __future__ import annotations

# GH / API operations
GH_TIMEOUT_SECONDS = 60.0
GH_CLONE_TIMEOUT_SECONDS = 15 * 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 30 * 60.0

# Compiler invocations (one per platform)
COMPILE_TIMEOUT_SECONDS = 60 * 60.0

# Idempotent GH read retry policy
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0
