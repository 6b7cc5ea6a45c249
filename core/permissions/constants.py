"""
Custody Permissions - Capability Constants
==========================================
Capability names double as the role labels written into history.
"""

CAPABILITY_MANUFACTURER = "Manufacturer"
CAPABILITY_TRANSPORTER = "Transporter"
CAPABILITY_WAREHOUSE = "Warehouse"
CAPABILITY_RETAILER = "Retailer"
CAPABILITY_ADMINISTRATOR = "Administrator"

VALID_CAPABILITIES = frozenset(
    {
        CAPABILITY_MANUFACTURER,
        CAPABILITY_TRANSPORTER,
        CAPABILITY_WAREHOUSE,
        CAPABILITY_RETAILER,
        CAPABILITY_ADMINISTRATOR,
    }
)

# Lookup order for registry-derived role labels.
ROLE_LABEL_PRIORITY = (
    CAPABILITY_MANUFACTURER,
    CAPABILITY_TRANSPORTER,
    CAPABILITY_WAREHOUSE,
    CAPABILITY_RETAILER,
    CAPABILITY_ADMINISTRATOR,
)

ROLE_LABEL_UNKNOWN = "Unknown"
