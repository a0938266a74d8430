# Importing the package registers every mapped table on Base.metadata.
from spotwise.models.user import User
from spotwise.models.provider_location import ProviderLocation
from spotwise.models.service_request import ServiceRequest
from spotwise.models.request_history import RequestHistoryEntry

__all__ = ["User", "ProviderLocation", "ServiceRequest", "RequestHistoryEntry"]
