"""Project persistence and sync core for the CipherStudio playground shell."""
