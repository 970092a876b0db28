"""Service Intake Gateway: authenticated intake of service requests, orders and statuses."""
