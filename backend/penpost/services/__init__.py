# Services package init
"""
Penpost Backend — Services Layer
==================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services take an AsyncSession per call plus plain values or pydantic
       models, apply the business rules, and return response schemas. They
       are built once in `create_app()` and reach routes through
       penpost.dependencies.

Service Inventory:
    - AuthService: register, login, token verification, identity lookup
    - PostService: post CRUD with category/author resolution and images
    - CategoryService: category CRUD
    - FileService: image validation, storage and cleanup
"""
