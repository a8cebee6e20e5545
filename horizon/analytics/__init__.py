"""
Predictive analytics engine.

Pure engines (kernel, runway, monte_carlo, fundraising, cashflow, cohort)
are orchestrated by AnalyticsService, which reads history and stores
artifacts through a DataAccessPort.
"""
