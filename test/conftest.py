# simple way to see if there are order dependencies in tests
#def pytest_collection_modifyitems(items):
#    items.reverse()

# Add a marker for the tests that run background threads.
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "threads: tests starting background worker threads"
    )
