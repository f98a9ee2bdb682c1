# app/deps.py
# Role: Shared FastAPI dependencies.
#       The wired AppComponents live on app.state and are handed to routes
#       through get_components.

"""
Shared dependencies for the expense tracker API.
"""

from fastapi import Request

from expense_tracker.orchestrator import AppComponents


def get_components(request: Request) -> AppComponents:
    """
    FastAPI dependency returning the application's component graph.

    Typical usage in routes:
        components: AppComponents = Depends(get_components)
    """
    return request.app.state.components
