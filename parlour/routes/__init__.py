"""HTTP routes for the parlour API."""

from .api import blueprint
