# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   article_service  — read-through cached queries + ownership-checked writes
#   auth_service     — registration and login
#   user_service     — user directory lookups and creation
#
# All service functions accept an AsyncSession as their first argument
# supplied by the ``get_db`` dependency.  Article mutations commit before
# they invalidate the cache.  Article functions also take the CacheManager
# explicitly so tests can swap it.
