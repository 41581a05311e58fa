"""Burner combustion physics simulation modules.

Modules:
    fuels: Fuel catalog (formula, heating value, analyzer target bands)
    chemistry: Stoichiometric flue-gas composition, efficiency and NOx
    regulator: Regulator-pressure fuel bounds and gas/oil metering
    dynamics: Flame scanner signal and stack temperature lag models
    analyzer: Flue-gas analyzer sensor response and operating states
"""
