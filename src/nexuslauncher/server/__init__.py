"""HTTP surface for nexuslauncher.

Serves the control page, the SSE run and keep-alive streams, and the
health/ping routes used by hosting platforms and cron jobs.
"""
