"""
Rental allocation: the guarded AVAILABLE -> RENTED transition.
"""

import logging

from sqlalchemy import select, update

from rental_catalog.database import utcnow
from rental_catalog.executor import QueryExecutor
from rental_catalog.models.property import Property, PropertyStatus
from rental_catalog.schemas.property import RentalReceipt
from rental_catalog.utils.exceptions import PropertyNotAvailableError, PropertyNotFoundError

logger = logging.getLogger(__name__)


class RentalAllocator:
    """
    Moves a property from AVAILABLE to RENTED at most once.

    The check and the write are one conditional UPDATE, so of any number of
    concurrent attempts on the same property exactly one succeeds and the rest
    see ``PropertyNotAvailableError``.
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor
        self.table = Property.__table__

    async def rent(self, property_id: str, tenant_id: str) -> RentalReceipt:
        """
        Rent a property to a tenant.

        Args:
            property_id: Property to rent
            tenant_id: Tenant taking the rental

        Returns:
            RentalReceipt with the property title and rent amount

        Raises:
            PropertyNotFoundError: If the property does not exist
            PropertyNotAvailableError: If the property is not AVAILABLE
        """
        rented_at = utcnow()

        async with self.executor.transaction() as tx:
            result = await tx.execute(
                update(self.table)
                .where(
                    self.table.c.id == property_id,
                    self.table.c.status == PropertyStatus.AVAILABLE,
                )
                .values(status=PropertyStatus.RENTED, updated_at=rented_at)
            )

            current = await tx.execute(
                select(self.table.c.title, self.table.c.price, self.table.c.status)
                .where(self.table.c.id == property_id)
            )
            row = current.first()

        if result.rowcount == 1:
            logger.info(f"Property {property_id} rented to tenant {tenant_id}")
            return RentalReceipt(
                property_id=property_id,
                tenant_id=tenant_id,
                title=row["title"],
                rent_amount=row["price"],
                rented_at=rented_at,
            )

        if row is None:
            logger.warning(f"Rental attempted on missing property {property_id}")
            raise PropertyNotFoundError(property_id)

        status = PropertyStatus(row["status"])
        logger.warning(f"Rental rejected for property {property_id}: status is {status.value}")
        raise PropertyNotAvailableError(property_id, status.value)
