"""I2P addresses, destination key files and SAM v3 sessions."""