import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware

logger = logging.getLogger(__name__)


@database_sync_to_async
def get_user_for_token(raw_token):
    # Lazy imports to avoid AppRegistryNotReady
    from django.contrib.auth import get_user_model
    from django.contrib.auth.models import AnonymousUser
    from rest_framework_simplejwt.exceptions import TokenError
    from rest_framework_simplejwt.tokens import AccessToken

    User = get_user_model()
    try:
        access_token = AccessToken(raw_token)
        return User.objects.get(id=access_token["user_id"], is_active=True)
    except (TokenError, KeyError, User.DoesNotExist) as e:
        logger.warning("Websocket JWT rejected: %s", e)
        return AnonymousUser()


class JWTAuthMiddleware(BaseMiddleware):
    """
    Resolve the websocket caller from a `?token=<access token>` query string.
    """

    async def __call__(self, scope, receive, send):
        from django.contrib.auth.models import AnonymousUser

        query_string = parse_qs(scope.get("query_string", b"").decode())
        token = query_string.get("token")

        scope = dict(scope)
        scope["user"] = await get_user_for_token(token[0]) if token else AnonymousUser()

        return await super().__call__(scope, receive, send)
