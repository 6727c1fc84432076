# Import all models so they register themselves on Base.metadata
# (Alembic env.py and the test engine both rely on this).
from legtrack.models.shipment import Shipment, ShipmentChangeLog, ShipmentLegRef  # noqa: F401
from legtrack.models.shipment_leg import ShipmentLeg, ShipmentLegStatusHistory  # noqa: F401
