#!/usr/bin/env python3
"""Emit deterministic SQL that provisions the intake tables."""

from __future__ import annotations

import argparse

DROP_SQL = """drop table if exists contractor_requests;
drop table if exists applicants;
"""

SCHEMA_SQL = """create table if not exists applicants (
  id serial primary key,
  email text not null,
  phone text not null,
  reddit_username text not null,
  twitter_username text,
  youtube_username text,
  facebook_username text,
  identity_verified boolean not null default false,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now(),
  constraint applicants_email_phone_key unique (email, phone)
);

create index if not exists applicants_email_idx on applicants (email);

create table if not exists contractor_requests (
  id serial primary key,
  applicant_id integer not null references applicants (id) on delete cascade,
  email text not null,
  company_slug text not null,
  company_name text not null,
  status text not null default 'pending'
    check (status in ('pending', 'approved', 'rejected')),
  joined_community_channel boolean not null default true,
  can_start_job boolean not null default false,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now(),
  constraint contractor_requests_applicant_company_key unique (applicant_id, company_slug)
);
"""


def render_sql(*, drop: bool = False) -> str:
    header = "-- Intake schema\n-- Run against the database named by FDU_DATABASE_URL (or FDU_TEST_DATABASE_URL).\n\n"
    if drop:
        return header + DROP_SQL + "\n" + SCHEMA_SQL
    return header + SCHEMA_SQL


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to create the applicant intake tables.")
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing intake tables first (destroys data; for test databases)",
    )
    args = parser.parse_args()
    print(render_sql(drop=args.drop))


if __name__ == "__main__":
    main()
