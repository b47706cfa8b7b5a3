"""
Job Board UI - Flask + HTMX frontend and JSON API.

Job seekers browse, filter and apply to jobs; employees post jobs and
respond to applications.
"""
