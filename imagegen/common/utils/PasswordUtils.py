"""
密码哈希（PBKDF2-SHA256）

password_hash 保存为 "pbkdf2_sha256$迭代次数$十六进制摘要"，
调整迭代次数后旧密码仍可校验
"""
import hashlib
import hmac
import secrets
from typing import Tuple

ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 200000


def _digest(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations).hex()


def hash_password(password: str) -> Tuple[str, str]:
    """
    :return: (password_hash, salt)
    """
    salt = secrets.token_hex(16)
    return f"{ALGORITHM}${PBKDF2_ITERATIONS}${_digest(password, salt, PBKDF2_ITERATIONS)}", salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    try:
        algorithm, iterations, expected = password_hash.split("$")
        iterations = int(iterations)
    except (AttributeError, ValueError):
        return False
    if algorithm != ALGORITHM or not salt:
        return False
    return hmac.compare_digest(_digest(password, salt, iterations), expected)
