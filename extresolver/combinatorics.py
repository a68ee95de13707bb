#!/usr/bin/env python3
#
# Copyright 2022 Max Planck Insitute Magdeburg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
#
"""Prime validation and binomial coefficients modulo small primes"""

from functools import lru_cache
from typing import List, Sequence

from extresolver.errors import InputError

# Entries of FpMatrix are int64. Products of two entries must not overflow.
MAX_PRIME = 1 << 16


def is_prime(p) -> bool:
    if not isinstance(p, int) or isinstance(p, bool) or p < 2:
        return False
    i = 2
    while i * i <= p:
        if p % i == 0:
            return False
        i += 1
    return True


def valid_prime(p) -> int:
    """Return p if it is a prime supported by the finite-field kernel, raise InputError otherwise"""
    if not is_prime(p):
        raise InputError('Expected a prime number, got ' + repr(p) + '.')
    if p >= MAX_PRIME:
        raise InputError('Prime ' + str(p) + ' is too large. Only primes below ' + str(MAX_PRIME) + ' are supported.')
    return p


def inverse(p: int, x: int) -> int:
    """Multiplicative inverse of x in F_p"""
    return pow(x % p, p - 2, p)


def minus_one_to_the(n: int, p: int) -> int:
    """(-1)^n as an element of F_p"""
    return 1 if n % 2 == 0 else p - 1


def digits(p: int, n: int) -> List[int]:
    """Base p digits of n, least significant first"""
    result = []
    while n > 0:
        result.append(n % p)
        n //= p
    return result


@lru_cache(maxsize=None)
def _small_binomial(n: int, k: int) -> int:
    if k < 0 or k > n:
        return 0
    result = 1
    for i in range(k):
        result = result * (n - i) // (i + 1)
    return result


def binomial(p: int, n: int, k: int) -> int:
    """Binomial coefficient n choose k modulo p, computed digit-wise (Lucas' theorem)

    Returns 0 for k < 0, k > n or n < 0.
    """
    if n < 0 or k < 0 or k > n:
        return 0
    result = 1
    while n > 0 or k > 0:
        n_i, k_i = n % p, k % p
        if k_i > n_i:
            return 0
        result = (result * _small_binomial(n_i, k_i)) % p
        n //= p
        k //= p
    return result


def multinomial(p: int, parts: Sequence[int]) -> int:
    """Multinomial coefficient (sum parts)! / prod(parts!) modulo p

    The multinomial is the product of the binomials C(x_1 + ... + x_i, x_i), each of which is reduced
    with Lucas' theorem.
    """
    result = 1
    total = 0
    for x in parts:
        if x == 0:
            continue
        total += x
        result = (result * binomial(p, total, x)) % p
        if result == 0:
            return 0
    return result


def xi_degrees(p: int, n: int) -> List[int]:
    """Degrees of the Milnor generators xi_1, ..., xi_n, divided by q (q = 1 at p = 2, else 2(p-1))"""
    # |xi_i| / q = (p^i - 1) / (p - 1)
    return [(p**i - 1) // (p - 1) for i in range(1, n + 1)]


def tau_degrees(p: int, n: int) -> List[int]:
    """Degrees of the Milnor generators tau_0, ..., tau_{n-1} (odd primes only)"""
    return [2 * p**i - 1 for i in range(n)]
