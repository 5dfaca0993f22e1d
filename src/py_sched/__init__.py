"""py-sched — a discrete-time CPU scheduling simulator."""
