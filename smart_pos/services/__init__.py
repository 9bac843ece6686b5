"""
                        Services Module

Business logic behind the REST routes and socket handlers.

Services:
    - orders: order lifecycle and kitchen queue
    - menu, tables: catalogue and dining room
    - settlement: payments and refunds on top of the payment gateway
    - payment: Mock (development) and Stripe (production) gateways
    - analytics: dashboard figures
    - ledger: process-safe Excel sales ledger
"""

from smart_pos.services.ledger import ExcelLedger

__all__ = ["ExcelLedger"]
