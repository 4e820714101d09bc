"""Security middlewares run around a handler once its guards allowed it.

Every middleware follows the continuation-passing contract in ``chain``:
inspect or mutate the ``SecurityContext``, then call ``next_`` to proceed.
"""
