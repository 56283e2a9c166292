"""
Filter builder for property searches.
Folds the present fields of a PropertySearchFilters into one parameterized predicate.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

from rental_catalog.models.property import Property
from rental_catalog.schemas.property import PropertySearchFilters


@dataclass
class FilterClause:
    """
    Predicate terms plus the values bound into them, in the order they were added.

    Values only ever travel as bound parameters; nothing is interpolated into SQL.
    """

    conditions: List[ColumnElement] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)
    order_by: List[Any] = field(default_factory=list)

    def add(self, condition: ColumnElement, value: Any) -> None:
        self.conditions.append(condition)
        self.params.append(value)

    @property
    def predicate(self) -> ColumnElement:
        """Conjunction of all terms, or an unconditional true."""
        if not self.conditions:
            return true()
        return and_(*self.conditions)


def _sort_columns(filters: Optional[PropertySearchFilters]) -> List[Any]:
    if filters is None or filters.sort_by is None:
        # Newest first, id as a stable tie-breaker
        return [Property.created_at.desc(), Property.id.desc()]

    column = getattr(Property, filters.sort_by)
    ordered = column.asc() if filters.sort_order == "asc" else column.desc()
    return [ordered, Property.id.desc()]


def build_property_filter(filters: Optional[PropertySearchFilters] = None) -> FilterClause:
    """
    Build the search predicate for a property query.

    Args:
        filters: Search criteria; None or an empty bag matches every property

    Returns:
        FilterClause with predicate, ordered params and ordering
    """
    clause = FilterClause(order_by=_sort_columns(filters))
    if filters is None:
        return clause

    if filters.status is not None:
        clause.add(Property.status == filters.status, filters.status)

    if filters.landlord_id is not None:
        clause.add(Property.landlord_id == filters.landlord_id, filters.landlord_id)

    # Case-insensitive substring match, LIKE wildcards in the input are escaped
    if filters.location is not None:
        clause.add(Property.location.icontains(filters.location, autoescape=True), filters.location)

    if filters.min_price is not None:
        clause.add(Property.price >= filters.min_price, filters.min_price)
    if filters.max_price is not None:
        clause.add(Property.price <= filters.max_price, filters.max_price)

    if filters.bedrooms is not None:
        if filters.bedrooms_or_more:
            clause.add(Property.bedrooms >= filters.bedrooms, filters.bedrooms)
        else:
            clause.add(Property.bedrooms == filters.bedrooms, filters.bedrooms)

    # Bathrooms are always a lower bound
    if filters.bathrooms is not None:
        clause.add(Property.bathrooms >= filters.bathrooms, filters.bathrooms)

    return clause
