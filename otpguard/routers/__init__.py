"""HTTP routers for the otpguard API."""
