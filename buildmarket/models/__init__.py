# Importing every model registers its table on Base.metadata (Alembic, create_all)
from buildmarket.models.build import Build, BuildFlag
from buildmarket.models.profile import BuyerProfile
from buildmarket.models.purchase import Purchase
from buildmarket.models.review import Review

__all__ = ["Build", "BuildFlag", "BuyerProfile", "Purchase", "Review"]
