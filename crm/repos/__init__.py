from .contacts_repo import ContactsRepo
from .deals_repo import DealsRepo

__all__ = ["ContactsRepo", "DealsRepo"]
