"""otpguard: verification code issuance with brute-force lockout."""
