#!/usr/bin/env python3
import asyncio
import sys
import os
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from models import FieldMapping
from sync_engine import SyncEngine

# Generate test data
source_rows = [
    {'id': i, 'firstName': f'first{i}', 'lastName': f'last{i}'}
    for i in range(10000)
]
destination_rows = [
    {'id': i, 'FullName': 'stale' if i < 1000 else f'first{i} last{i}'}
    for i in range(500, 10500)
]
mappings = [
    FieldMapping(field_name='id', source_field='id', is_key=True),
    FieldMapping(field_name='FullName', compute=lambda row: f"{row['firstName']} {row['lastName']}"),
]

# Performance test
start_time = time.time()
engine = SyncEngine(source_rows, destination_rows, mappings)
changes = asyncio.run(engine.get_changes())
duration = time.time() - start_time

print(f'Diffed 10,000 records in {duration:.2f} seconds')
assert duration < 30, f'Performance test failed: {duration:.2f}s > 30s'
assert len(changes.inserted) == 500, f'Expected 500 inserted, got {len(changes.inserted)}'
assert len(changes.deleted) == 500, f'Expected 500 deleted, got {len(changes.deleted)}'
assert len(changes.updated) == 500, f'Expected 500 updated, got {len(changes.updated)}'
print('Performance test passed')
