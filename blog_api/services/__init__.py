# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single aggregate:
#
#   user_service     create/read/count for User
#   post_service     create/read/count for Post, view counting on read
#   tag_service      Tag CRUD and idempotent post/tag linking
#   comment_service  threaded comments (one-level and full-tree reads)
#
# All service functions accept an AsyncSession as their first argument
# so that the caller controls the transaction boundary.  ``telemetry``
# supplies the ``@logged`` decorator wrapped around every public function.
