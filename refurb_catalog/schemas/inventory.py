"""Schemas for inventory processing (/v1/inventory/process).

The product group schema is also the input of the catalog sync, so a client
can post the processing response's `productGroups` back unchanged.
"""

from typing import Any

from pydantic import BaseModel, Field

from refurb_catalog.services.aggregator import (
    AggregationResult,
    ItemRecord,
    ProductAttributes,
    ProductGroup,
    VariantRecord,
    compute_variant_key,
    create_seo_title,
)
from refurb_catalog.services.pricing import DEFAULT_BASE_PRICE


class Item(BaseModel):
    """One inventory row inside a product group."""

    model: str = ""
    color: str = "Default"
    condition: str = "A"
    serial_number: str = Field(alias="serialNumber", default="")
    stock: int = 1
    original_row: dict[str, str] = Field(alias="originalRow", default_factory=dict)

    model_config = {"populate_by_name": True, "protected_namespaces": ()}


class Variant(BaseModel):
    """A (color, condition) bucket with its stock."""

    color: str = "Default"
    condition: str = "A"
    quantity: int = Field(default=0, ge=0)
    serial_numbers: list[str] = Field(alias="serialNumbers", default_factory=list)

    model_config = {"populate_by_name": True}


class ProductGroupOut(BaseModel):
    """A sellable product listing built from one or more rows."""

    product_type: str = Field(alias="productType")
    model: str = ""
    processor: str = "Unknown"
    storage: str = "Unknown"
    memory: str = "Unknown"
    display_size: str = Field(alias="displaySize", default="")
    year: str = ""
    seo_title: str = Field(alias="seoTitle", default="")
    base_price: int = Field(alias="basePrice", default=DEFAULT_BASE_PRICE, gt=0)
    collections: list[str] = Field(default_factory=list)
    original_category: str = Field(alias="originalCategory", default="")
    items: list[Item] = Field(default_factory=list)
    variants: dict[str, Variant] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "protected_namespaces": ()}

    @classmethod
    def from_domain(cls, group: ProductGroup) -> "ProductGroupOut":
        return cls(
            product_type=group.product_type,
            model=group.model,
            processor=group.processor,
            storage=group.storage,
            memory=group.memory,
            display_size=group.display_size,
            year=group.year,
            seo_title=group.seo_title,
            base_price=group.base_price,
            collections=list(group.collections),
            original_category=group.original_category,
            items=[
                Item(
                    model=i.model,
                    color=i.color,
                    condition=i.condition,
                    serial_number=i.serial_number,
                    stock=i.stock,
                    original_row=i.original_row,
                )
                for i in group.items
            ],
            variants={
                key: Variant(
                    color=v.color,
                    condition=v.condition,
                    quantity=v.quantity,
                    serial_numbers=list(v.serial_numbers),
                )
                for key, v in group.variants.items()
            },
        )

    def to_domain(self, key: str) -> ProductGroup:
        """Rebuild the service-level group (e.g. from a posted sync request)."""
        seo_title = self.seo_title or create_seo_title(
            ProductAttributes(
                product_type=self.product_type,
                model=self.model,
                processor=self.processor,
                storage=self.storage,
                memory=self.memory,
                color="Default",
                condition="A",
                display_size=self.display_size,
                year=self.year,
            )
        )
        variants: dict[str, VariantRecord] = {}
        for v in self.variants.values():
            variants[compute_variant_key(v.color, v.condition)] = VariantRecord(
                color=v.color,
                condition=v.condition,
                quantity=v.quantity,
                serial_numbers=list(v.serial_numbers),
            )
        return ProductGroup(
            key=key,
            product_type=self.product_type,
            model=self.model or self.product_type,
            processor=self.processor,
            storage=self.storage,
            memory=self.memory,
            display_size=self.display_size,
            year=self.year,
            seo_title=seo_title,
            base_price=self.base_price,
            collections=list(self.collections) or [self.product_type, "Refurbished", "Apple"],
            original_category=self.original_category,
            items=[
                ItemRecord(
                    model=i.model,
                    color=i.color,
                    condition=i.condition,
                    serial_number=i.serial_number,
                    stock=i.stock,
                    original_row=dict(i.original_row),
                )
                for i in self.items
            ],
            variants=variants,
        )


class ProcessResponse(BaseModel):
    """Response payload for POST /v1/inventory/process."""

    total_items: int = Field(alias="totalItems", ge=0)
    group_count: int = Field(alias="groupCount", ge=0)
    total_rows: int = Field(alias="totalRows", ge=0)
    skipped_rows: int = Field(alias="skippedRows", ge=0)
    categories: dict[str, int]
    product_groups: dict[str, ProductGroupOut] = Field(alias="productGroups")
    debug: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_result(cls, result: AggregationResult, debug: dict[str, Any] | None = None) -> "ProcessResponse":
        return cls(
            total_items=result.total_items,
            group_count=result.group_count,
            total_rows=result.total_rows,
            skipped_rows=result.skipped_rows,
            categories=dict(result.categories),
            product_groups={
                key: ProductGroupOut.from_domain(group) for key, group in result.groups.items()
            },
            debug=debug,
        )
