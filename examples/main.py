import logging

from indimap import AttributeMap, MapOptions

logging.basicConfig(level=logging.INFO)


def main() -> None:
    settings = AttributeMap.from_mapping(
        {'server': {'host': 'localhost', 'port': 8080}},
        default=list,
        options=MapOptions(strict_keys=True),
    )
    settings.deep_update({'server': {'port': 9090}, 'debug': True})

    print('host:', settings.attrs.server.attrs.host)
    print('port:', settings.dig('server', 'port'))
    print('plugins (default):', settings.attrs.plugins)
    print('cache configured:', settings.dispatch('cache?'))
    settings.dispatch('cache!').attrs.ttl = 60

    # Logs a key conflict, the data stays reachable by key and through dispatch.
    settings['items'] = ['a', 'b']
    print('items data:', settings.dispatch('items'))
    print(settings.to_plain_mapping())


if __name__ == '__main__':
    main()
