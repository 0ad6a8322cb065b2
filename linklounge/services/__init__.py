"""
High-level use cases for the LinkLounge API.

Each service orchestrates the repository and the core adapters (tokens,
mailer, image store) to implement business rules; routers call services and
never touch storage directly.
"""
