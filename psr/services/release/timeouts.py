from __future__ import annotations

# REST API requests
API_TIMEOUT_SECONDS = 60.0

# Combined ref status polling: 30 checks, 30 s apart (15 min ceiling)
REF_STATUS_POLL_SECONDS = 30.0
REF_STATUS_MAX_ATTEMPTS = 30

# Pull request listings
PR_PAGE_SIZE = 100
