"""
HTTP API package.

Contains:
- middleware: auth dependencies, CORS and request logging
- routes/: alerts and files routers
- services/: service container shared with scheduled jobs
"""
