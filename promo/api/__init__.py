"""Endpoint functions for the marketplace and payment APIs."""
