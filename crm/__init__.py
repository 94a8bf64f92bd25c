"""Multi-tenant CRM API: workspace access control and deal automation."""
