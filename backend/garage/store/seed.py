"""Demo catalogue loaded into a fresh state when SEED_DEMO_DATA is on."""
from __future__ import annotations

from loguru import logger

from garage.models.domain import Customer, Service, Stock
from garage.store.state import AppState

DEMO_STOCKS = [
    Stock(
        product_name="Engine Oil 5W-30",
        part_number="EO-5W30-001",
        hsn_code="27101980",
        purchase_price=450,
        profit_margin=25,
        selling_price=562.5,
        gst=18,
        category="Lubricants",
    ),
    Stock(
        product_name="Brake Pads Front",
        part_number="BP-F-002",
        hsn_code="87083010",
        purchase_price=1200,
        profit_margin=30,
        selling_price=1560,
        gst=28,
        category="Brake System",
    ),
]

DEMO_SERVICES = [
    Service(service_name="General Service", hsn_code="998599", gst=18, labour=800, category="Maintenance"),
    Service(service_name="AC Repair", hsn_code="998599", gst=18, labour=1500, category="AC Services"),
]

DEMO_CUSTOMERS = [
    Customer(
        name="Rajesh Kumar",
        address="123 MG Road, Bangalore",
        phone="9876543210",
        gst_number="29ABCDE1234F1Z5",
        vehicle_number="KA01AB1234",
        model="Swift",
        make="Maruti Suzuki",
        kilometer="45000",
    ),
]


def seed_demo_data(state: AppState) -> None:
    """Add the demo records to any collection that is still empty."""
    for collection, records in (
        (state.stocks, DEMO_STOCKS),
        (state.services, DEMO_SERVICES),
        (state.customers, DEMO_CUSTOMERS),
    ):
        if len(collection):
            continue
        for record in records:
            collection.add(record)
    logger.info("demo data seeded")
