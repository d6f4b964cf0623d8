"""Background jobs run by the APScheduler worker."""
