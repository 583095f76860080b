PLUGIN_MANIFEST = {
    "name": "trugen",
    "display_name": "Trugen",
    "version": "1",
    # Dotted import path used by the Shu plugin loader to instantiate the class.
    "module": "plugins.trugen.plugin:TrugenPlugin",
    # - http: Trugen REST API calls
    # - secrets: Trugen API key via host.secrets.get("trugen_api_key")
    # - log: structured logging via host.log
    "capabilities": ["http", "secrets", "log"],
    # create_agent provisions a remote agent and is left to explicit workflow steps.
    "chat_callable_ops": ["list_avatars", "get_conversation", "verify_credentials"],
}
