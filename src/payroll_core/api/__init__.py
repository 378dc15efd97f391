"""HTTP adapter for the payroll services."""
