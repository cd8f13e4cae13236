"""REST façade over Elasticsearch for product search, suggestion and aggregation."""
