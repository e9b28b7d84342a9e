"""\
Fetch implementations for :mod:`kt.hypermedia.discovery`.

"""

import asyncio

import kt.hypermedia.interfaces


ACCEPT = (f'{kt.hypermedia.interfaces.HAL_CONTENT_TYPE},'
          f' {kt.hypermedia.interfaces.JSONAPI_CONTENT_TYPE};q=0.9')


def app_fetcher(app, accept=ACCEPT):
    """Return a fetch coroutine function issuing requests to a Flask *app*.

    Requests are made using a fresh test client for each URL, allowing
    an application to be explored without a network.  Requests are run
    in worker threads so fetches for the same depth can proceed
    concurrently.

    Responses with an error status raise
    :exc:`~kt.hypermedia.interfaces.FetchFailure`.

    """
    headers = {}
    if accept:
        headers['Accept'] = accept

    def get(url):
        response = app.test_client().get(url, headers=headers)
        try:
            if response.status_code >= 400:
                raise kt.hypermedia.interfaces.FetchFailure(
                    url, f'HTTP status {response.status_code}')
            return response.get_data(), response.mimetype
        finally:
            response.close()

    async def fetch(url):
        return await asyncio.to_thread(get, url)

    return fetch
