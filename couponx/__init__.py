"""CouponX coupon-sharing API and client auth layer."""

__version__ = "0.1.0"
