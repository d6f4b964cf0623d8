"""PracticeHub core platform.

Shared infrastructure used by every section (clients, tasks, finance,
workflows, reports):
- Database connection pool and base repository
- Authentication, tenants, permissions
- In-app and e-mail notifications
- Logging, API helpers, secret encryption
"""
