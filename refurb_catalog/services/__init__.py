"""Business logic services.

Services contain all business logic and are called by routes.
The grouping engine (normalizer, classifier, aggregator, pricing) is pure and
synchronous; only the catalog sync performs I/O.
"""
