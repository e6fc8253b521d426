"""PostgreSQL storage for users and sessions."""
