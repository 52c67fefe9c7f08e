"""Organization-scoped message CRUD service."""
