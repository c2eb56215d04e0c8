"""
                        Services Module

Business logic for the order lifecycle.

Services:
    - orders: state machine, order store, customer submission
    - realtime: restaurant-scoped event bus (in-process or Redis pub/sub)
    - restaurants: slug resolution and seeding helpers
"""
