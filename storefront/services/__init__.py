"""Business logic services.

Services contain all business logic and are called by routes.
Every public operation returns its success model or an ``OperationError``;
upstream failures never escape as exceptions.
"""
