"""
Payment provider abstraction.

Modules:
- constants: PaymentMethod and canonical PaymentStatus choices
- types: PaymentRequest / PaymentResult value objects, minor-unit helpers
- status: provider status mapping tables
- signatures: webhook HMAC verification
- providers: MyFatoorah and Stripe implementations
- registry: PaymentMethod -> provider dispatch
- exceptions: structured payment errors
"""
