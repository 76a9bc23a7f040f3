from typing import List, Optional
from uuid import UUID
from sqlmodel import Session, select
from loguru import logger

from app.core.audit import record_audit
from app.core.config import settings
from app.core.exceptions import NotFoundError, DuplicateError
from app.db.schema import (
    Supplier, Factory, Technologist, TechnologistType, AuditAction
)
from app.models.supplier import SupplierCreate, FactoryCreate, TechnologistCreate


class SupplierService:
    """
    Service layer for the external collaborators the engine consumes:
    Suppliers (test validity window), their Factories (risk inputs) and
    the Technologists styles are accountable to.
    """

    def __init__(self, session: Session):
        """
        Initializes the service with a database session.

        Args:
            session (Session): The SQLModel database session.
        """
        self.session = session

    # ==========================================================================
    # SUPPLIERS
    # ==========================================================================

    def create_supplier(self, data: SupplierCreate, actor: str) -> Supplier:
        """
        Registers a new supplier.

        Args:
            data (SupplierCreate): Code, name, approval level and optional test expiry window.
            actor (str): Who performed the action.

        Returns:
            Supplier: The created supplier record.
        """
        existing = self.session.exec(
            select(Supplier).where(Supplier.code == data.code)
        ).first()

        if existing:
            raise DuplicateError(
                "Supplier", existing.id, f"Supplier code '{data.code}' already exists.")

        supplier = Supplier(**data.model_dump())

        self.session.add(supplier)
        record_audit(self.session, actor, "Supplier", supplier.id, AuditAction.CREATE,
                     changes=data.model_dump(mode='json'))
        self.session.commit()
        self.session.refresh(supplier)

        logger.info(f"Supplier {supplier.code} registered")
        return supplier

    def list_suppliers(self) -> List[Supplier]:
        return self.session.exec(select(Supplier).order_by(Supplier.code.asc())).all()

    def get_supplier(self, supplier_id: UUID) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    def resolve_expiry_months(self, supplier_id: Optional[UUID]) -> int:
        """
        How many months a base test stays reusable for this supplier's styles.

        Args:
            supplier_id (UUID, optional): The supplier. Unknown ids fall back to the default.

        Returns:
            int: `test_expiry_months`, or the platform default when unset.
        """
        supplier = self.session.get(Supplier, supplier_id) if supplier_id else None
        if supplier and supplier.test_expiry_months:
            return supplier.test_expiry_months
        return settings.default_test_expiry_months

    # ==========================================================================
    # FACTORIES
    # ==========================================================================

    def create_factory(self, data: FactoryCreate, actor: str) -> Factory:
        self.get_supplier(data.supplier_id)

        factory = Factory(**data.model_dump())

        self.session.add(factory)
        record_audit(self.session, actor, "Factory", factory.id, AuditAction.CREATE,
                     changes=data.model_dump(mode='json'))
        self.session.commit()
        self.session.refresh(factory)
        return factory

    def list_factories(self, supplier_id: Optional[UUID] = None) -> List[Factory]:
        query = select(Factory)
        if supplier_id:
            query = query.where(Factory.supplier_id == supplier_id)
        return self.session.exec(query.order_by(Factory.name.asc())).all()

    def get_factory(self, factory_id: UUID) -> Factory:
        factory = self.session.get(Factory, factory_id)
        if not factory:
            raise NotFoundError("Factory", factory_id)
        return factory

    # ==========================================================================
    # TECHNOLOGISTS
    # ==========================================================================

    def create_technologist(self, data: TechnologistCreate, actor: str) -> Technologist:
        existing = self.session.exec(
            select(Technologist).where(Technologist.email == data.email)
        ).first()

        if existing:
            raise DuplicateError(
                "Technologist", existing.id, f"Email '{data.email}' is already registered.")

        tech = Technologist(**data.model_dump())

        self.session.add(tech)
        record_audit(self.session, actor, "Technologist", tech.id, AuditAction.CREATE,
                     changes=data.model_dump(mode='json'))
        self.session.commit()
        self.session.refresh(tech)
        return tech

    def list_technologists(self, tech_type: Optional[TechnologistType] = None) -> List[Technologist]:
        query = select(Technologist)
        if tech_type:
            query = query.where(Technologist.type == tech_type)
        return self.session.exec(query.order_by(Technologist.name.asc())).all()
