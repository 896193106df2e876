#!/usr/bin/env python3
"""Starter vocabulary and a seeding entry point."""

import argparse
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import Word


def get_seed_data():
    """Starter vocabulary by category.

    Returns {category: {name: str, items: {term: translation}}}.
    Translations with several senses separate them with ';'.
    """
    return {
        'verbs': {
            'name': 'Common verbs',
            'items': {
                'abandon': '放弃;遗弃;抛弃',
                'achieve': '实现;达到',
                'borrow': '借',
                'consider': '考虑;认为',
                'deliver': '递送;发表',
                'explain': '解释',
                'improve': '改进;提高',
                'prepare': '准备',
                'remember': '记得',
                'suggest': '建议;暗示'
            }
        },
        'food': {
            'name': 'Food',
            'items': {
                'bread': '面包',
                'cheese': '奶酪',
                'egg': '鸡蛋',
                'milk': '牛奶',
                'rice': '米饭;大米',
                'apple': '苹果',
                'vegetable': '蔬菜',
                'water': '水'
            }
        },
        'travel': {
            'name': 'Travel',
            'items': {
                'airport': '机场',
                'ticket': '票;罚单',
                'luggage': '行李',
                'passport': '护照',
                'journey': '旅程;旅行',
                'station': '车站;站',
                'map': '地图',
                'hotel': '酒店;旅馆'
            }
        }
    }


def seed_words() -> list[Word]:
    words = []
    for category, data in get_seed_data().items():
        for term, translation in data['items'].items():
            words.append(Word(term, translation, category))
    return words


def main():
    parser = argparse.ArgumentParser(description='Seed the lingo word store')
    parser.add_argument('--storage', choices=['file', 'postgres'],
                        default=os.environ.get('LINGO_STORAGE', 'file'))
    parser.add_argument('--state-dir', default=os.environ.get('LINGO_STATE_DIR'))
    args = parser.parse_args()

    if args.storage == 'postgres':
        from server.postgres_storage import PostgresStorage
        storage = PostgresStorage()
    else:
        from server.file_storage import FileStorage
        storage = FileStorage(state_dir=args.state_dir)

    added = storage.add_words(seed_words())
    print(f"Seeded {added} words")
    return 0


if __name__ == '__main__':
    sys.exit(main())
