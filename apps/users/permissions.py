from rest_framework.permissions import BasePermission


def is_platform_admin(user):
    return bool(user and user.is_authenticated and user.has_admin_access())


def is_project_client(user, project):
    return bool(user and user.is_authenticated and project.client_id == user.id)


def is_project_freelancer(user, project):
    return bool(
        user
        and user.is_authenticated
        and project.freelancer_id is not None
        and project.freelancer_id == user.id
    )


class IsClient(BasePermission):
    message = "Client access required."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role == "client"
        )


class IsFreelancer(BasePermission):
    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role == "freelancer"
        )


class IsPlatformAdmin(BasePermission):
    message = "Admin access required."

    def has_permission(self, request, view):
        return is_platform_admin(request.user)


class IsProjectParty(BasePermission):
    """
    Client or assigned freelancer of the project, or an admin.
    """
    def has_object_permission(self, request, view, obj):
        return (
            is_project_client(request.user, obj)
            or is_project_freelancer(request.user, obj)
            or is_platform_admin(request.user)
        )
