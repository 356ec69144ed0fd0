#!/usr/bin/env python3
"""
Validate that test_scenarios_business_summary.md stays in sync with test_integration_scenarios.py.

This script checks:
1. All test classes in the test file are documented
2. All test methods are referenced in the doc
3. Warns about documented tests that no longer exist

Run: python scripts/validate_test_docs_sync.py
"""

import re
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
TEST_FILE = PROJECT_ROOT / 'tests' / 'test_integration_scenarios.py'
DOC_FILE = PROJECT_ROOT / 'docs' / 'test_scenarios_business_summary.md'

CLASS_PATTERN = re.compile(r'^class (Test\w+)')
METHOD_PATTERN = re.compile(r'^\s+def (test_\w+)')
DOC_CLASS_PATTERN = re.compile(r'\*\*Test Class\*\*:\s*`(Test\w+)`')
DOC_METHOD_PATTERN = re.compile(r'\*\*Test Method\*\*:\s*`(test_\w+)`')


def extract_test_classes_and_methods(test_file: Path = TEST_FILE) -> dict[str, list[str]]:
    """Map each test class in the file to its test methods."""
    classes = {}
    current_class = None

    for line in test_file.read_text().splitlines():
        class_match = CLASS_PATTERN.match(line)
        if class_match:
            current_class = class_match.group(1)
            classes[current_class] = []
        elif current_class:
            method_match = METHOD_PATTERN.match(line)
            if method_match:
                classes[current_class].append(method_match.group(1))

    return classes


def extract_documented_tests(doc_file: Path = DOC_FILE) -> tuple[set[str], set[str]]:
    """Class and method names referenced in the business summary."""
    content = doc_file.read_text()
    return set(DOC_CLASS_PATTERN.findall(content)), set(DOC_METHOD_PATTERN.findall(content))


def compare(test_file: Path = TEST_FILE, doc_file: Path = DOC_FILE) -> tuple[list[str], list[str]]:
    """Return (errors, warnings). Undocumented tests are errors, stale docs are warnings."""
    test_classes = extract_test_classes_and_methods(test_file)
    doc_classes, doc_methods = extract_documented_tests(doc_file)
    test_methods = {m for methods in test_classes.values() for m in methods}

    errors = [f"Missing class documentation: {c}" for c in sorted(set(test_classes) - doc_classes)]
    errors += [f"Missing method documentation: {m}" for m in sorted(test_methods - doc_methods)]
    warnings = [f"Documented class no longer exists: {c}" for c in sorted(doc_classes - set(test_classes))]
    warnings += [f"Documented method no longer exists: {m}" for m in sorted(doc_methods - test_methods)]
    return errors, warnings


def main() -> int:
    for path in (TEST_FILE, DOC_FILE):
        if not path.exists():
            print(f"File not found: {path}")
            return 1

    errors, warnings = compare()
    test_classes = extract_test_classes_and_methods()
    doc_classes, doc_methods = extract_documented_tests()

    print("=" * 60)
    print("Test Documentation Sync Validation")
    print("=" * 60)
    print(f"Test classes found: {len(test_classes)}")
    print(f"Documented classes: {len(doc_classes)}")
    print(f"Documented methods: {len(doc_methods)}")

    for label, items in (("ERRORS", errors), ("WARNINGS", warnings)):
        if items:
            print(f"\n{label} ({len(items)}):")
            for item in items:
                print(f"   - {item}")

    if not errors and not warnings:
        print("\nAll scenarios are documented and in sync.")

    print("\nCoverage by Class:")
    for cls, methods in sorted(test_classes.items()):
        print(f"\n  [{'x' if cls in doc_classes else ' '}] {cls}")
        for method in methods:
            print(f"      [{'x' if method in doc_methods else ' '}] {method}")

    return 1 if errors else 0


if __name__ == '__main__':
    sys.exit(main())
