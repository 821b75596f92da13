class Templates:
    """Runtime-фрагменты TypeScript, которые вставляются в генерируемые файлы"""

    http_client = """export interface ClientConfig {
  baseUrl: string;
  headers?: Record<string, string>;
  credentials?: RequestCredentials;
  fetch?: typeof fetch;
  onRequest?: (init: RequestInit) => RequestInit | Promise<RequestInit>;
  onResponse?: (response: Response) => Response | Promise<Response>;
  onError?: (error: ApiError) => void;
}

type ParamValue = string | number | boolean | null | undefined | Array<string | number | boolean>;

export interface RequestOptions {
  path?: Record<string, ParamValue>;
  query?: Record<string, ParamValue>;
  headers?: Record<string, ParamValue>;
  cookies?: Record<string, ParamValue>;
  body?: unknown;
  contentType?: string;
  signal?: AbortSignal;
}

export interface CallOptions {
  signal?: AbortSignal;
  headers?: Record<string, string>;
}

export class ApiError extends Error {
  constructor(
    public readonly status: number,
    public readonly statusText: string,
    public readonly data: unknown,
    message?: string
  ) {
    super(message ?? `API Error: ${status} ${statusText}`);
    this.name = 'ApiError';
  }
}

export class HttpClient {
  private config: ClientConfig;

  constructor(config: Partial<ClientConfig> = {}) {
    this.config = { baseUrl: '', ...config };
  }

  configure(config: Partial<ClientConfig>): void {
    this.config = { ...this.config, ...config };
  }

  async request<T>(method: string, path: string, options: RequestOptions = {}): Promise<T> {
    const url = this.buildUrl(path, options.path, options.query);
    const headers: Record<string, string> = { ...this.config.headers };
    for (const [key, value] of Object.entries(options.headers ?? {})) {
      if (value !== undefined && value !== null) headers[key] = String(value);
    }
    if (options.cookies) {
      const cookie = Object.entries(options.cookies)
        .filter(([, value]) => value !== undefined && value !== null)
        .map(([key, value]) => `${key}=${encodeURIComponent(String(value))}`)
        .join('; ');
      if (cookie) headers['Cookie'] = cookie;
    }

    let init: RequestInit = {
      method,
      headers,
      credentials: this.config.credentials,
      signal: options.signal,
    };

    if (options.body !== undefined) {
      if (options.body instanceof FormData || options.body instanceof Blob) {
        init.body = options.body;
      } else if (options.contentType === 'application/x-www-form-urlencoded') {
        headers['Content-Type'] = options.contentType;
        init.body = new URLSearchParams(options.body as Record<string, string>).toString();
      } else {
        headers['Content-Type'] = options.contentType ?? 'application/json';
        init.body = JSON.stringify(options.body);
      }
    }

    if (this.config.onRequest) {
      init = await this.config.onRequest(init);
    }

    const fetchFn = this.config.fetch ?? fetch;
    let response = await fetchFn(url, init);

    if (this.config.onResponse) {
      response = await this.config.onResponse(response);
    }

    if (!response.ok) {
      let data: unknown;
      try {
        data = await response.json();
      } catch {
        data = await response.text();
      }
      const error = new ApiError(response.status, response.statusText, data);
      this.config.onError?.(error);
      throw error;
    }

    if (response.status === 204) {
      return undefined as T;
    }
    const contentType = response.headers.get('content-type') ?? '';
    if (contentType.includes('json')) {
      return (await response.json()) as T;
    }
    return (await response.text()) as unknown as T;
  }

  private buildUrl(
    path: string,
    params?: Record<string, ParamValue>,
    query?: Record<string, ParamValue>
  ): string {
    let url = `${this.config.baseUrl}${path}`;
    for (const [key, value] of Object.entries(params ?? {})) {
      url = url.replace(`{${key}}`, encodeURIComponent(String(value)));
    }

    const search = new URLSearchParams();
    for (const [key, value] of Object.entries(query ?? {})) {
      if (value === undefined || value === null) continue;
      if (Array.isArray(value)) {
        value.forEach((item) => search.append(key, String(item)));
      } else {
        search.append(key, String(value));
      }
    }
    const queryString = search.toString();
    return queryString ? `${url}?${queryString}` : url;
  }
}
"""

    graphql_client = """export interface GraphQLClientConfig {
  endpoint: string;
  headers?: Record<string, string>;
  fetch?: typeof fetch;
}

export class GraphQLRequestError extends Error {
  constructor(public readonly errors: Array<{ message: string }>, public readonly data: unknown) {
    super(errors.map((error) => error.message).join('; '));
    this.name = 'GraphQLRequestError';
  }
}

export class GraphQLClient {
  private config: GraphQLClientConfig;

  constructor(config: Partial<GraphQLClientConfig> = {}) {
    this.config = { endpoint: '/graphql', ...config };
  }

  configure(config: Partial<GraphQLClientConfig>): void {
    this.config = { ...this.config, ...config };
  }

  async execute<TResult, TVariables>(
    document: string,
    variables?: TVariables,
    options: CallOptions = {}
  ): Promise<TResult> {
    const fetchFn = this.config.fetch ?? fetch;
    const response = await fetchFn(this.config.endpoint, {
      method: 'POST',
      headers: { 'Content-Type': 'application/json', ...this.config.headers, ...options.headers },
      body: JSON.stringify({ query: document, variables }),
      signal: options.signal,
    });
    const payload = await response.json();
    if (payload.errors?.length) {
      throw new GraphQLRequestError(payload.errors, payload.data);
    }
    return payload.data as TResult;
  }
}
"""

    # CallOptions для GraphQL-клиента без REST-части
    call_options = """export interface CallOptions {
  signal?: AbortSignal;
  headers?: Record<string, string>;
}
"""

    auth_storage = """export interface TokenStorage {
  get(): string | null;
  set(token: string | null): void;
}

export function memoryStorage(): TokenStorage {
  let token: string | null = null;
  return {
    get: () => token,
    set: (value) => {
      token = value;
    },
  };
}

export function localStorageStorage(key = 'api-bridge-token'): TokenStorage {
  return {
    get: () => (typeof localStorage === 'undefined' ? null : localStorage.getItem(key)),
    set: (value) => {
      if (typeof localStorage === 'undefined') return;
      if (value === null) localStorage.removeItem(key);
      else localStorage.setItem(key, value);
    },
  };
}
"""


templates = Templates()
