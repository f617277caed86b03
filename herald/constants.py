# Base API prefix (all HTTP routes are served under /api/*)
API_PREFIX = "/api"
