"""Market settlement: escrow state machine, fee math, resolver policies, escrow audit."""
