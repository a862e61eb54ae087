"""SecYourFlow identity core: TOTP two-factor authentication."""
