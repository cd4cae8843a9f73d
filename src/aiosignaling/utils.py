import binascii
import os
import secrets
import string


def random_id() -> str:
    return binascii.hexlify(os.urandom(8)).decode()


def random_string(length: int) -> str:
    allchar = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(allchar) for x in range(length))
