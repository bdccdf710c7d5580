"""Infrastructure layer — observability for the practice analytics engine.

Modules:
    metrics     Prometheus metrics registry and record_* helpers.
"""
