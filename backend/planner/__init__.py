"""Student study planner backend.

`planner.main.create_app` builds the FastAPI application. The
credential store, token issuer and authorization gate live in
`planner.services` and `planner.auth`; resource routers are under
`planner.routes`.
"""
