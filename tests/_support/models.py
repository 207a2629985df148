"""Record types and the SQLite schema they map onto.

Kept at module level so ``typing.get_type_hints`` can resolve the
relationship annotations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from spineorm.model import belongs_to, column, has_many, has_one, ignore, many_to_many


@dataclass
class Company:
    id: int | None = None
    name: str = ""


@dataclass
class Profile:
    id: int | None = None
    user_id: int | None = None
    bio: str = ""


@dataclass
class Email:
    id: int | None = None
    user_id: int | None = None
    email: str = ""


@dataclass
class Language:
    id: int | None = None
    name: str = ""


@dataclass
class Toy:
    id: int | None = None
    name: str = ""
    owner_id: int | None = None
    owner_type: str = ""


@dataclass
class User:
    id: int | None = None
    name: str = ""
    age: int = 0
    company_id: int | None = None
    role: str = column(has_default=True, default="")
    created_at: datetime | None = None
    updated_at: datetime | None = None
    company: Company | None = belongs_to()
    profile: Profile | None = has_one()
    emails: list[Email] = has_many()
    languages: list[Language] = many_to_many("user_languages")
    toys: list[Toy] = has_many(polymorphic="owner")
    calls: list[str] = ignore(default_factory=list)

    def before_save(self, ctx):
        self.calls.append("before_save")

    def before_create(self, ctx):
        self.calls.append("before_create")

    def after_create(self, ctx):
        self.calls.append("after_create")

    def before_update(self, ctx):
        self.calls.append("before_update")

    def after_update(self, ctx):
        self.calls.append("after_update")

    def after_save(self, ctx):
        self.calls.append("after_save")

    def after_find(self, ctx):
        self.calls.append("after_find")


@dataclass
class Post:
    id: int | None = None
    title: str = ""
    user_id: int | None = None
    user: User | None = belongs_to()


@dataclass
class Article:
    id: int | None = None
    title: str = ""
    deleted_at: datetime | None = None


@dataclass
class Widget:
    id: int | None = None
    name: str = ""


@dataclass(frozen=True)
class Gadget:
    id: int | None = None
    name: str = ""


SCHEMA = """
CREATE TABLE companies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT ''
);
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT '',
    age INTEGER NOT NULL DEFAULT 0,
    company_id INTEGER REFERENCES companies(id),
    role TEXT NOT NULL DEFAULT 'member',
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    bio TEXT NOT NULL DEFAULT ''
);
CREATE TABLE emails (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    email TEXT NOT NULL DEFAULT ''
);
CREATE TABLE languages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT ''
);
CREATE TABLE user_languages (
    user_id INTEGER NOT NULL,
    language_id INTEGER NOT NULL,
    PRIMARY KEY (user_id, language_id)
);
CREATE TABLE toys (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT '',
    owner_id INTEGER,
    owner_type TEXT NOT NULL DEFAULT ''
);
CREATE TABLE posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL DEFAULT '',
    user_id INTEGER
);
CREATE TABLE articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL DEFAULT '',
    deleted_at TEXT
);
CREATE TABLE widgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT ''
);
CREATE TABLE gadgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT ''
);
"""
