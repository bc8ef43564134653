# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for one part of the domain:
#
#   user_service          registration, login, profile edits, user/profile views
#   relationship_service  follow/favorite membership and the favorites counter
#   article_service       article CRUD, slugs, listing/feed, tags, article view
#   comment_service       comment create/list/delete, comment view
#
# All service functions accept an AsyncSession as their first argument so
# the router layer controls the transaction boundary via ``get_db``.
