from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Person:
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True)
class Greeting:
    message: str = ""


def say_hello(person: Person) -> Greeting:
    logger.info("server received %s", person)
    greeting = Greeting(message=f"Hello {person.first_name} {person.last_name}")
    logger.info("server responded %s", greeting)
    return greeting
