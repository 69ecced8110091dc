"""
Feature modules live under this package.

Each module owns its models, repository, service and routes, and reuses the
platform pieces (auth, capabilities, audit, DB session) from app.canvashub.
"""
