"""Affiliate storefront API."""
