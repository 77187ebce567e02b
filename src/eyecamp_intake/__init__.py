"""Eye Camp Intake - clinical intake core for optometry outreach camps."""

__version__ = "0.1.0"
