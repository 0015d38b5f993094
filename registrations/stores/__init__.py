from registrations.stores.django_store import DjangoRegistrationStore
from registrations.stores.interfaces import RegistrationStore
from registrations.stores.memory_store import InMemoryRegistrationStore

__all__ = ["RegistrationStore", "DjangoRegistrationStore", "InMemoryRegistrationStore"]
