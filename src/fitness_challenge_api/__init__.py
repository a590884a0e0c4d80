"""45-day fitness challenge API."""
