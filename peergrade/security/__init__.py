from .access_policy import AccessPolicy, Action, Subject

__all__ = ["AccessPolicy", "Action", "Subject"]
