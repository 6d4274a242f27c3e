"""
                        Services Module

Contains the business logic behind the API.

Services:
    - catalog: Typed queries over categories, products and ingredients
    - cart: Session cart with Memory (development) and Redis (production) stores
    - orders: Atomic checkout and per-user order history
    - excel_manager: Process-safe Excel ledger of placed orders
"""
