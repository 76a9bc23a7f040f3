from datetime import timedelta

from loguru import logger
from sqlmodel import Session, select

from app.db.core import engine, create_db_and_tables
from app.db.schema import (
    Supplier, ComponentType, FibreType, FabricConstruction, DyeMethod,
    TechnologistType, CertificateStatus, TestLevel, ParameterStatus,
    InspectionType, Priority
)
from app.models.component import ComponentCreate, FibreCompositionInput
from app.models.component_test import (
    TestRequestCreate, TestResultInput, ParameterInput
)
from app.models.inspection import InspectionCreate
from app.models.style import StyleCreate
from app.models.supplier import SupplierCreate, FactoryCreate, TechnologistCreate
from app.services.component import ComponentService
from app.services.component_test import TestLedgerService
from app.services.inspection import InspectionService
from app.services.lifecycle import LifecycleService
from app.services.link import LinkService
from app.services.style import StyleService
from app.services.supplier import SupplierService
from app.utils.clock import utc_now


SEED_ACTOR = "seed"

SUPPLIERS = [
    {"code": "TEX-001", "name": "Textile Excellence Ltd", "self_approval_level": 3, "test_expiry_months": 6},
    {"code": "GAR-002", "name": "Global Apparel Co", "self_approval_level": 2, "test_expiry_months": 12},
]

FACTORIES = {
    "TEX-001": [
        {"name": "Dhaka Knit Unit 2", "country": "BD", "on_time_delivery_pct": 94.0},
    ],
    "GAR-002": [
        {"name": "Tirupur Garments", "country": "IN", "on_time_delivery_pct": 81.5,
         "certificate_status": CertificateStatus.PENDING_AUDIT},
    ],
}

TECHNOLOGISTS = [
    {"name": "Sarah Johnson", "email": "sarah.johnson@example.com", "type": TechnologistType.FABRIC},
    {"name": "Michael Chen", "email": "michael.chen@example.com", "type": TechnologistType.GARMENT},
]

FABRICS = [
    {
        "reference_code": "TU-FAB-001", "mill": "Jiangsu Textiles Co", "origin_country": "CN",
        "construction": FabricConstruction.JERSEY, "weight_gsm": 180, "width_cm": 150,
        "dye_method": DyeMethod.PIECE_DYED, "colour": "Navy",
        "composition": [(FibreType.COTTON, 100)],
    },
    {
        "reference_code": "TU-FAB-002", "mill": "Arvind Mills", "origin_country": "IN",
        "construction": FabricConstruction.DENIM, "weight_gsm": 320, "width_cm": 145,
        "dye_method": DyeMethod.YARN_DYED, "colour": "Indigo", "sustainable": True,
        "composition": [(FibreType.ORGANIC_COTTON, 98), (FibreType.ELASTANE, 2)],
    },
]

TRIMS = [
    {"reference_code": "TU-TRM-001", "mill": "YKK Shenzhen", "origin_country": "CN",
     "trim_type": "Zipper", "colour": "Silver", "size": "60cm", "material": "Metal"},
]

STYLES = [
    {"tu_style_no": "100000001", "description": "Boys Navy Jersey Tee", "season": "SS25",
     "division": "childrens", "supplier": "TEX-001", "country_of_origin": "BD"},
    {"tu_style_no": "100000004", "description": "Boys Navy Jersey Shorts", "season": "SS25",
     "division": "childrens", "supplier": "TEX-001", "country_of_origin": "BD"},
    {"tu_style_no": "100000007", "description": "Womens Indigo Jean", "season": "AW25",
     "division": "womenswear", "supplier": "GAR-002", "country_of_origin": "IN"},
]


def seed_partners(session: Session) -> dict:
    """Suppliers, their factories and the technologist pool."""
    logger.info("--- Seeding Suppliers, Factories & Technologists ---")
    service = SupplierService(session)
    refs = {"suppliers": {}, "factories": {}, "techs": {}}

    for data in SUPPLIERS:
        supplier = service.create_supplier(SupplierCreate(**data), SEED_ACTOR)
        refs["suppliers"][supplier.code] = supplier
        for factory_data in FACTORIES[supplier.code]:
            factory = service.create_factory(
                FactoryCreate(supplier_id=supplier.id, **factory_data), SEED_ACTOR)
            refs["factories"][supplier.code] = factory

    for data in TECHNOLOGISTS:
        tech = service.create_technologist(TechnologistCreate(**data), SEED_ACTOR)
        refs["techs"][tech.type] = tech

    return refs


def seed_components(session: Session) -> dict:
    logger.info("--- Seeding Components ---")
    service = ComponentService(session)
    components = {}

    for data in FABRICS:
        data = dict(data)
        composition = [
            FibreCompositionInput(fibre_type=fibre, percentage=pct)
            for fibre, pct in data.pop("composition")
        ]
        component = service.create_component(
            ComponentCreate(component_type=ComponentType.FABRIC, composition=composition, **data),
            SEED_ACTOR,
        )
        components[component.reference_code] = service.approve_component(component.id, SEED_ACTOR)

    for data in TRIMS:
        component = service.create_component(
            ComponentCreate(component_type=ComponentType.TRIM, **data), SEED_ACTOR)
        components[component.reference_code] = service.approve_component(component.id, SEED_ACTOR)

    return components


def seed_styles(session: Session, refs: dict) -> dict:
    logger.info("--- Seeding Styles ---")
    service = StyleService(session)
    styles = {}

    for data in STYLES:
        data = dict(data)
        supplier = refs["suppliers"][data.pop("supplier")]
        style = service.create_style(
            StyleCreate(
                supplier_id=supplier.id,
                factory_id=refs["factories"][supplier.code].id,
                fabric_tech_id=refs["techs"][TechnologistType.FABRIC].id,
                garment_tech_id=refs["techs"][TechnologistType.GARMENT].id,
                base_approval_required=utc_now() + timedelta(days=14),
                **data,
            ),
            SEED_ACTOR,
        )
        styles[style.tu_style_no] = style

    return styles


def seed_evidence(session: Session, components: dict, styles: dict, refs: dict):
    """
    Proves TU-FAB-001 on the first style, then reuses it on the second so
    the inherited link is visible in the demo.
    """
    logger.info("--- Seeding Links & Tests ---")
    links = LinkService(session)
    ledger = TestLedgerService(session)

    fab_001 = components["TU-FAB-001"]
    tee, shorts, jean = styles["100000001"], styles["100000004"], styles["100000007"]

    links.link(tee.id, fab_001.id, SEED_ACTOR)
    links.link(tee.id, components["TU-TRM-001"].id, SEED_ACTOR)

    for component in (fab_001, components["TU-TRM-001"]):
        test = ledger.request_test(
            TestRequestCreate(component_id=component.id, style_id=tee.id,
                              level=TestLevel.BASE, lab_name="SGS Hong Kong"),
            SEED_ACTOR,
        )
        ledger.record_result(
            test.id,
            TestResultInput(
                report_code=f"SGS-{component.reference_code}",
                parameters=[
                    ParameterInput(name="Colour Fastness to Washing", specification=">=4",
                                   result="4-5", status=ParameterStatus.PASS),
                    ParameterInput(name="Tensile Strength", specification=">200N",
                                   result="245N", status=ParameterStatus.PASS),
                ],
            ),
            SEED_ACTOR,
        )

    LifecycleService(session).advance(tee.id, SEED_ACTOR)

    # Inherits the tee's base test
    links.link(shorts.id, fab_001.id, SEED_ACTOR)

    links.link(jean.id, components["TU-FAB-002"].id, SEED_ACTOR)
    ledger.request_test(
        TestRequestCreate(component_id=components["TU-FAB-002"].id, style_id=jean.id,
                          level=TestLevel.BASE, priority=Priority.URGENT,
                          due_date=utc_now() + timedelta(hours=12)),
        SEED_ACTOR,
    )

    InspectionService(session).schedule_inspection(
        InspectionCreate(
            factory_id=refs["factories"]["GAR-002"].id,
            style_id=jean.id,
            inspection_type=InspectionType.PRE_PRODUCTION,
            scheduled_date=utc_now() + timedelta(days=1),
            inspector="QA Team",
        ),
        SEED_ACTOR,
    )


def main():
    # Ensure tables exist (if not using Alembic)
    create_db_and_tables()

    with Session(engine) as session:
        if session.exec(select(Supplier).where(Supplier.code == "TEX-001")).first():
            logger.info("Demo data already present, nothing to do.")
            return

        refs = seed_partners(session)
        components = seed_components(session)
        styles = seed_styles(session, refs)
        seed_evidence(session, components, styles, refs)

    logger.success("Seeding completed successfully!")


if __name__ == "__main__":
    main()
