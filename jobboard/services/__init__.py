"""
Service layer for the job board.

Each service wraps one area of the domain (accounts, jobs, applications,
companies, notifications) and talks to MongoDB only through repositories.
"""
