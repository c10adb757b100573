"""
Variant Catalog

Materials (product families) and their purchasable variants. Catalog writes
are reserved to the platform operator; variants are soft-deleted so that
historical ledger lines keep their reference.
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.permissions import Action, CallerContext, ensure_can
from app.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.logging_config import audit_log, get_logger
from app.models.material import Material, MaterialVariant
from app.schemas.import_schema import ImportError, ImportResult, VariantImportRow
from app.schemas.material import MaterialCreate, MaterialUpdate, VariantCreate, VariantUpdate

logger = get_logger(__name__)

_IMMUTABLE_MATERIAL_FIELDS = ("name", "type", "unit")
_REQUIRED_IMPORT_FIELDS = (
    "material_type",
    "name",
    "regular_price",
    "preferred_price",
    "coverage_area",
    "overage_rate",
)
_PRICE_FIELDS = ("regular_price", "preferred_price", "coverage_area", "overage_rate")
# An explicit null clears these; any other null in an update is ignored
_NULLABLE_VARIANT_FIELDS = ("color", "type")


# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------


def get_material(db: Session, material_id: int) -> Material:
    material = db.query(Material).filter(Material.id == material_id).first()
    if material is None:
        raise NotFoundError(
            f"Material {material_id} not found", details={"material_id": material_id}
        )
    return material


def list_materials(db: Session) -> List[Dict]:
    """Active materials with the cheapest active variant price in each tier."""
    rows = (
        db.query(
            Material.id,
            Material.name,
            func.min(MaterialVariant.regular_price),
            func.min(MaterialVariant.preferred_price),
        )
        .outerjoin(
            MaterialVariant,
            (MaterialVariant.material_id == Material.id) & (MaterialVariant.is_active.is_(True)),
        )
        .filter(Material.is_active.is_(True))
        .group_by(Material.id, Material.name)
        .order_by(Material.name)
        .all()
    )
    return [
        {
            "id": material_id,
            "name": name,
            "min_regular_price": min_regular,
            "min_preferred_price": min_preferred,
        }
        for material_id, name, min_regular, min_preferred in rows
    ]


def create_material(db: Session, data: MaterialCreate, caller: CallerContext) -> Material:
    ensure_can(caller, Action.MANAGE_CATALOG)
    existing = (
        db.query(Material.id)
        .filter(func.lower(Material.name) == data.name.lower())
        .first()
    )
    if existing:
        raise ConflictError(
            f"Material '{data.name}' already exists", details={"field": "name"}
        )

    material = Material(
        name=data.name,
        type=data.type,
        unit=data.unit,
        description=data.description,
    )
    db.add(material)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Material '{data.name}' already exists", details={"field": "name"})
    db.refresh(material)
    audit_log(
        "MATERIAL_CREATED",
        user_id=caller.user_id,
        resource_type="material",
        resource_id=material.id,
    )
    return material


def update_material(
    db: Session, material_id: int, data: MaterialUpdate, caller: CallerContext
) -> Material:
    """
    Update a material.

    Once variants reference a material only ``is_active`` and ``description``
    may change.
    """
    ensure_can(caller, Action.MANAGE_CATALOG)
    material = get_material(db, material_id)
    changes = data.model_dump(exclude_unset=True)

    has_variants = (
        db.query(MaterialVariant.id)
        .filter(MaterialVariant.material_id == material.id)
        .first()
        is not None
    )
    if has_variants:
        for field in _IMMUTABLE_MATERIAL_FIELDS:
            if field in changes and changes[field] != getattr(material, field):
                raise ValidationFailedError(
                    f"Material '{material.name}' has variants; {field} can no longer change",
                    field=field,
                )

    for field, value in changes.items():
        if value is not None:
            setattr(material, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Material name already exists", details={"field": "name"})
    db.refresh(material)
    return material


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


def get_variant(db: Session, variant_id: int) -> MaterialVariant:
    variant = db.query(MaterialVariant).filter(MaterialVariant.id == variant_id).first()
    if variant is None:
        raise NotFoundError(
            f"Variant {variant_id} not found", details={"variant_id": variant_id}
        )
    return variant


def variant_query(
    db: Session,
    is_operator: bool = False,
    search: Optional[str] = None,
    types: Optional[List[str]] = None,
    status: Optional[str] = None,
    include_inactive: bool = False,
    material_id: Optional[int] = None,
):
    """Ordered variant query with the catalog listing filters applied."""
    query = db.query(MaterialVariant)
    if material_id is not None:
        query = query.filter(MaterialVariant.material_id == material_id)

    if not is_operator:
        query = query.filter(MaterialVariant.is_active.is_(True))
    elif status == "active":
        query = query.filter(MaterialVariant.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(MaterialVariant.is_active.is_(False))
    elif not include_inactive:
        query = query.filter(MaterialVariant.is_active.is_(True))

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                MaterialVariant.name.ilike(pattern),
                MaterialVariant.color.ilike(pattern),
                MaterialVariant.type.ilike(pattern),
            )
        )

    if types:
        lowered = [t.lower() for t in types]
        query = query.join(Material, MaterialVariant.material_id == Material.id).filter(
            func.lower(Material.name).in_(lowered)
        )

    return query.order_by(MaterialVariant.name, MaterialVariant.id)


def _duplicate_variant(db: Session, material_id: int, name: str, color: Optional[str], exclude_id=None):
    query = db.query(MaterialVariant.id).filter(
        MaterialVariant.material_id == material_id,
        func.lower(MaterialVariant.name) == name.lower(),
    )
    if color is None:
        query = query.filter(MaterialVariant.color.is_(None))
    else:
        query = query.filter(func.lower(MaterialVariant.color) == color.lower())
    if exclude_id is not None:
        query = query.filter(MaterialVariant.id != exclude_id)
    return query.first() is not None


def create_variant(
    db: Session, material_id: int, data: VariantCreate, caller: CallerContext
) -> MaterialVariant:
    ensure_can(caller, Action.MANAGE_CATALOG)
    material = get_material(db, material_id)
    if _duplicate_variant(db, material.id, data.name, data.color):
        raise ConflictError(
            f"Variant '{data.name}' already exists for material '{material.name}'",
            details={"field": "name", "material_id": material.id},
        )

    variant = MaterialVariant(material_id=material.id, **data.model_dump())
    db.add(variant)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            f"Variant '{data.name}' already exists for material '{material.name}'",
            details={"field": "name", "material_id": material.id},
        )
    db.refresh(variant)
    audit_log(
        "VARIANT_CREATED",
        user_id=caller.user_id,
        resource_type="material_variant",
        resource_id=variant.id,
    )
    return variant


def update_variant(
    db: Session, variant_id: int, data: VariantUpdate, caller: CallerContext
) -> MaterialVariant:
    """Partial update. Ledger lines keep the price they were written with."""
    ensure_can(caller, Action.MANAGE_CATALOG)
    variant = get_variant(db, variant_id)
    changes = {
        k: v
        for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE_VARIANT_FIELDS
    }

    name = changes.get("name", variant.name)
    color = changes.get("color", variant.color)
    if ("name" in changes or "color" in changes) and _duplicate_variant(
        db, variant.material_id, name, color, exclude_id=variant.id
    ):
        raise ConflictError(
            f"Variant '{name}' already exists for this material",
            details={"field": "name", "material_id": variant.material_id},
        )

    for field, value in changes.items():
        setattr(variant, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            f"Variant '{name}' already exists for this material",
            details={"field": "name", "material_id": variant.material_id},
        )
    db.refresh(variant)

    audit_log(
        "VARIANT_UPDATED",
        user_id=caller.user_id,
        resource_type="material_variant",
        resource_id=variant.id,
        details=changes,
    )
    return variant


def delete_variant(db: Session, variant_id: int, caller: CallerContext) -> MaterialVariant:
    """Soft delete: the variant disappears from new jobs but stays referenced."""
    ensure_can(caller, Action.MANAGE_CATALOG)
    variant = get_variant(db, variant_id)
    variant.is_active = False
    db.commit()
    db.refresh(variant)
    audit_log(
        "VARIANT_DEACTIVATED",
        user_id=caller.user_id,
        resource_type="material_variant",
        resource_id=variant.id,
    )
    return variant


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------


def _row_error(row: VariantImportRow) -> Optional[Tuple[str, str]]:
    for field in _REQUIRED_IMPORT_FIELDS:
        value = getattr(row, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return field, "Missing required field"
    for field in _PRICE_FIELDS:
        if getattr(row, field) < 0:
            return field, "Must be non-negative"
    return None


def _collision_error(index: int, row: VariantImportRow) -> ImportError:
    color = f" ({row.color})" if row.color else ""
    return ImportError(
        row=index,
        field="name",
        message=f"Variant '{row.name}'{color} already exists for this material",
    )


def import_variants(
    db: Session, rows: List[VariantImportRow], mode: str, caller: CallerContext
) -> ImportResult:
    """
    Bulk-create (or upsert) variants keyed by material type.

    Rows that fail validation or collide with another variant are reported
    and skipped; they never abort the rest of the batch. Each row is written
    in its own savepoint so a store-level failure only discards that row.
    """
    ensure_can(caller, Action.MANAGE_CATALOG)

    errors: List[ImportError] = []
    created = updated = skipped = 0

    material_by_type: Dict[str, Material] = {}
    for material in db.query(Material).order_by(Material.id).all():
        material_by_type.setdefault(material.type.lower(), material)

    # (material_id, lowercase name) -> first variant by id, including rows added in this batch
    known: Dict[Tuple[int, str], MaterialVariant] = {}
    for v in db.query(MaterialVariant).order_by(MaterialVariant.id).all():
        known.setdefault((v.material_id, v.name.lower()), v)

    for index, row in enumerate(rows, start=1):
        problem = _row_error(row)
        if problem:
            field, message = problem
            errors.append(ImportError(row=index, field=field, message=message))
            continue

        material = material_by_type.get(row.material_type.lower())
        if material is None:
            errors.append(
                ImportError(
                    row=index,
                    field="material_type",
                    message=f"Invalid material type '{row.material_type}'",
                )
            )
            continue

        values = {
            "color": row.color or None,
            "type": row.type or None,
            "regular_price": row.regular_price,
            "preferred_price": row.preferred_price,
            "coverage_area": row.coverage_area,
            "overage_rate": row.overage_rate,
        }
        key = (material.id, row.name.lower())
        existing = known.get(key)

        if existing is not None and mode != "upsert":
            skipped += 1
            continue

        exclude_id = existing.id if existing is not None else None
        if _duplicate_variant(db, material.id, row.name, values["color"], exclude_id=exclude_id):
            errors.append(_collision_error(index, row))
            continue

        try:
            with db.begin_nested():
                if existing is not None:
                    for field, value in values.items():
                        setattr(existing, field, value)
                else:
                    variant = MaterialVariant(material_id=material.id, name=row.name, **values)
                    db.add(variant)
                db.flush()
        except IntegrityError:
            logger.warning("Variant import row rejected by the store", extra={"row": index})
            errors.append(_collision_error(index, row))
            continue

        if existing is not None:
            updated += 1
        else:
            known[key] = variant
            created += 1

    db.commit()

    logger.info(
        "Variant import finished",
        extra={
            "total_rows": len(rows),
            "created_count": created,
            "updated_count": updated,
            "failed_count": len(errors),
        },
    )
    audit_log(
        "VARIANTS_IMPORTED",
        user_id=caller.user_id,
        resource_type="material_variant",
        details={"created": created, "updated": updated, "skipped": skipped, "failed": len(errors)},
    )
    return ImportResult(
        total=len(rows),
        created=created,
        updated=updated,
        skipped=skipped,
        failed=len(errors),
        errors=errors,
    )
