"""Shared FastAPI dependencies for revent routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from revent.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    """Runtime attached to the application at creation."""
    runtime: Runtime = request.app.state.runtime
    return runtime


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]
