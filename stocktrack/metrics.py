from prometheus_client import Counter

# Counter: tracks total orders created
orders_created_total = Counter(
    "orders_created_total",
    "Total number of orders created"
)

# Counter: tracks transitions between order statuses
order_status_transitions_total = Counter(
    "order_status_transitions_total",
    "Total number of order status transitions, labeled by new status",
    ["status"],
)

# Counter: tracks orders whose stock went back to inventory, labeled by reason
orders_canceled_total = Counter(
    "orders_canceled_total",
    "Total number of canceled orders",
    ["reason"]
)

inventory_reservation_failures = Counter(
    "inventory_reservation_failures",
    "Total number of inventory reservation failures",
    ["reason"]
)

# Counter: records crossing below the low-stock threshold
inventory_low_stock_total = Counter(
    "inventory_low_stock_total",
    "Total number of times an inventory record dropped below the low-stock threshold",
)
