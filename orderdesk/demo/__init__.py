from orderdesk.demo.default_rates import DEFAULT_SHIPPING_RATES, seed_default_rates

__all__ = ["DEFAULT_SHIPPING_RATES", "seed_default_rates"]
