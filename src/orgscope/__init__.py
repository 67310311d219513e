"""orgscope: fingerprint store and sunburst queries for organization dashboards."""
