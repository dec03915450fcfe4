"""Templated responses for the login form and the static pages."""

from __future__ import annotations

from fastapi.templating import Jinja2Templates
from jinja2 import Environment, PackageLoader

__all__ = ["templates"]

templates = Jinja2Templates(
    env=Environment(
        loader=PackageLoader("porthor", package_path="templates"),
        autoescape=True,
    ),
)
"""The template manager."""
