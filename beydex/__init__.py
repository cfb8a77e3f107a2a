"""BeyDex: Beyblade identification, catalog and collection service."""
