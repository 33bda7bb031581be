class MockNull:
    """Stands in for any object; attributes spring into existence

    Calls are remembered in `calls` as (args, kwargs) pairs.
    """
    def __init__(self, **kwargs):
        self.__dict__['calls'] = []
        for key, value in kwargs.items():
            self.__dict__[key] = value

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        return MockNull()

    def __getattr__(self, name):
        # Intermediate steps of an assignment become MockNulls, so with
        # just 'client' defined this works:
        #
        # client.portal.config.SYSNAME = 'Test'
        self.__dict__[name] = MockNull()
        return getattr(self, name)

    def __getitem__(self, key): return self
    def __iter__(self): return iter(())
    def __len__(self): return 0
    def __str__(self): return ''
    def __repr__(self): return '<MockNull 0x%x>'%id(self)
