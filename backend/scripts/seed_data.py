"""Seed script to populate a local database with a small demonstration catalog.

Usage:
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate --force
    PYTHONPATH=backend/src python backend/scripts/seed_data.py clear
"""

import argparse
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from db.session import create_tables, get_session_factory
from schemas.document import DocumentCreate
from schemas.project import ProjectCreate
from schemas.prompt_template import PromptTemplateCreate
from schemas.skill import SkillCreate
from schemas.snippet import SnippetCreate
from schemas.todo import TodoCreate
from services.document_service import document_service
from services.project_service import project_service
from services.prompt_template_service import prompt_template_service
from services.skill_service import skill_service
from services.snippet_service import snippet_service
from services.todo_service import todo_service

SEED_AUTHOR = 'seed'

# ---------------------------------------------------------------------------
# Template projects
# ---------------------------------------------------------------------------

TEMPLATES = [
    {
        'slug': 'fastapi-stack',
        'name': 'FastAPI Stack',
        'description': 'Async Python API with FastAPI, SQLAlchemy 2 and pytest.',
        'tags': ['api', 'python', 'fastapi'],
        'documents': {
            'TECHSTACK': (
                'FastAPI Stack',
                '# Tech Stack\n\n'
                '- **FastAPI** for HTTP routing and request validation\n'
                '- **SQLAlchemy 2** (async) with asyncpg in production, aiosqlite locally\n'
                '- **Pydantic v2** for schemas and settings\n'
                '- **pytest** + pytest-asyncio for tests\n'
            ),
            'CODING_GUIDELINES': (
                'Python Guidelines',
                '# Coding Guidelines\n\n'
                '- Type hints on every public function\n'
                '- Services flush, the request dependency commits\n'
                '- Routers stay thin: validation in schemas, logic in services\n'
            ),
        },
        'skills': [
            {
                'name': 'write-tests',
                'description': 'Write pytest tests for a service function',
                'content': (
                    'Write async pytest tests using the db_session fixture. Name tests '
                    'test__<function>__<behavior> and cover the not-found path.'
                ),
                'tags': ['testing', 'pytest'],
            },
            {
                'name': 'db-migration',
                'type': 'code_template',
                'description': 'Add a column to an existing model',
                'content': 'Add the mapped column, a default for existing rows, and a test.',
                'tags': ['database', 'sqlalchemy'],
            },
        ],
    },
    {
        'slug': 'expo-stack',
        'name': 'Expo Mobile Stack',
        'description': 'React Native app built with Expo Router and TypeScript.',
        'tags': ['mobile', 'react-native', 'expo'],
        'documents': {
            'TECHSTACK': (
                'Expo Stack',
                '# Tech Stack\n\n'
                '- **Expo** (managed workflow) with Expo Router\n'
                '- **TypeScript** in strict mode\n'
                '- **React Query** for server state\n'
            ),
            'UI_UX_STANDARDS': (
                'Mobile UI Standards',
                '# UI/UX Standards\n\n'
                '- Touch targets at least 44pt\n'
                '- Support dark mode from the first screen\n'
            ),
        },
        'skills': [
            {
                'name': 'write-tests',
                'description': 'Write component tests with React Native Testing Library',
                'content': 'Render the component, query by accessible role, assert on text.',
                'tags': ['testing', 'jest'],
            },
        ],
    },
]

# ---------------------------------------------------------------------------
# Demo user project
# ---------------------------------------------------------------------------

DEMO_PROJECT = {
    'slug': 'demo-app',
    'name': 'Demo App',
    'description': 'A sample project showing every kind of record.',
    'tags': ['python', 'demo'],
}

DEMO_DOCUMENTS = {
    'PLAN': (
        'Project Plan',
        '# Plan\n\n1. Model the domain\n2. Expose a REST API\n3. Add auth with JWT tokens\n',
    ),
    'SCOPE': (
        'Scope',
        '# Scope\n\nIn: task tracking, reminders.\nOut: billing, native apps.\n',
    ),
}

DEMO_SNIPPETS = [
    {
        'name': 'retry-with-backoff',
        'language': 'python',
        'description': 'Retry an async call with exponential backoff',
        'code': (
            'async def retry(fn, attempts=3, base=0.5):\n'
            '    for i in range(attempts):\n'
            '        try:\n'
            '            return await fn()\n'
            '        except Exception:\n'
            '            if i == attempts - 1:\n'
            '                raise\n'
            '            await asyncio.sleep(base * 2 ** i)\n'
        ),
        'tags': ['async', 'resilience'],
    },
]

DEMO_PROMPTS = [
    {
        'name': 'code-review',
        'description': 'Review a change for bugs and style',
        'content': (
            'Review the following {{ language }} code for bugs, naming and missing tests.\n\n'
            '{{ code }}\n'
        ),
        'category': 'review',
        'tags': ['review'],
    },
]

DEMO_TODOS = [
    {'title': 'Design the database schema', 'priority': 'high', 'status': 'completed'},
    {'title': 'Implement JWT auth', 'priority': 'critical', 'status': 'in_progress'},
    {'title': 'Write API docs', 'priority': 'low'},
]


async def create_templates(session: AsyncSession) -> None:
    """Create template projects with their documents and skills."""
    for data in TEMPLATES:
        await project_service.create(session, ProjectCreate(
            slug=data['slug'],
            name=data['name'],
            description=data['description'],
            tags=data['tags'],
            is_template=True,
            username=SEED_AUTHOR,
        ))
        for doc_type, (title, content) in data['documents'].items():
            await document_service.create(session, data['slug'], DocumentCreate(
                type=doc_type, title=title, content=content, username=SEED_AUTHOR,
            ))
        for skill in data['skills']:
            await skill_service.create(
                session, data['slug'], SkillCreate(**skill, username=SEED_AUTHOR),
            )
    print(f'  Created {len(TEMPLATES)} template projects')


async def create_demo_project(session: AsyncSession) -> None:
    """Create a user project with one of every record kind."""
    slug = DEMO_PROJECT['slug']
    await project_service.create(
        session, ProjectCreate(**DEMO_PROJECT, username=SEED_AUTHOR),
    )
    for doc_type, (title, content) in DEMO_DOCUMENTS.items():
        await document_service.create(session, slug, DocumentCreate(
            type=doc_type, title=title, content=content, username=SEED_AUTHOR,
        ))
    for snippet in DEMO_SNIPPETS:
        await snippet_service.create(
            session, slug, SnippetCreate(**snippet, username=SEED_AUTHOR),
        )
    for prompt in DEMO_PROMPTS:
        await prompt_template_service.create(
            session, slug, PromptTemplateCreate(**prompt, username=SEED_AUTHOR),
        )
    for todo in DEMO_TODOS:
        await todo_service.create(session, slug, TodoCreate(**todo, username=SEED_AUTHOR))
    print(
        f'  Created project {slug!r} with {len(DEMO_DOCUMENTS)} documents, '
        f'{len(DEMO_SNIPPETS)} snippets, {len(DEMO_PROMPTS)} prompts, {len(DEMO_TODOS)} todos'
    )


def seeded_slugs() -> list[str]:
    return [data['slug'] for data in TEMPLATES] + [DEMO_PROJECT['slug']]


async def clear_data(session: AsyncSession) -> None:
    """Delete every seeded project (cascades to its records)."""
    deleted = 0
    for slug in seeded_slugs():
        if await project_service.delete(session, slug):
            deleted += 1
    print(f'  Deleted {deleted} projects')
    print('Clear complete.')


async def populate(force: bool = False) -> None:
    """Populate the database with seed data."""
    await create_tables()
    session_factory = get_session_factory()

    async with session_factory() as session:
        try:
            existing = [
                slug for slug in seeded_slugs()
                if await project_service.get_by_slug(session, slug) is not None
            ]
            if existing:
                if force:
                    print('Existing data found, clearing first (--force)...')
                    await clear_data(session)
                    await session.flush()
                else:
                    print(
                        f'Data already exists ({", ".join(existing)}). '
                        f'Use --force to clear and re-seed.'
                    )
                    return

            print('Populating seed data...')
            await create_templates(session)
            await create_demo_project(session)
            await session.commit()
            print('Seed data created successfully.')
        except Exception:
            await session.rollback()
            raise


async def clear() -> None:
    """Remove all seeded projects."""
    session_factory = get_session_factory()

    async with session_factory() as session:
        try:
            await clear_data(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description='Seed the database with demonstration data.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    populate_parser = subparsers.add_parser('populate', help='Populate database with demo data')
    populate_parser.add_argument(
        '--force', action='store_true',
        help='Clear existing seed projects before populating',
    )

    subparsers.add_parser('clear', help='Remove all seeded projects')

    args = parser.parse_args()

    if args.command == 'populate':
        asyncio.run(populate(force=args.force))
    elif args.command == 'clear':
        asyncio.run(clear())


if __name__ == '__main__':
    main()
