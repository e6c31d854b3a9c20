"""Petochania: FastAPI REST API layer.

This package contains the FastAPI application, its routers, the Pydantic
request models and the upload handling.

Modules
-------
main
    Application factory, error envelope and the ``main()`` CLI entry point.
dependencies
    ``app.state`` accessors and the bearer-token guard.
auth
    Login and admin-account routes.
settings
    Site settings routes.
resources
    Router factories for cats, gallery, FAQ and reviews.
models
    Pydantic request models.
uploads
    Image upload storage and removal.
"""
