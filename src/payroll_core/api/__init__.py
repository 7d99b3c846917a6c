"""HTTP API over the payroll core."""
