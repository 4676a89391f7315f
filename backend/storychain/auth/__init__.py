"""Authentication module (local accounts + JWT).

Services:
    - UserService: registration, login, account moderation.

Dependencies:
    - get_current_user / get_approved_user / require_role for routers.
"""
